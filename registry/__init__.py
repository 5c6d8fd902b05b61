"""Research Project Registry Flask Application Package.

To build the Flask app:
    from registry.flask_app import create_app

To reconcile a session against the local database:
    from registry.core.reconciler import CollaborationReconciler

To check project permissions:
    from registry.core.access import user_has_role_in_project
"""
# Note: flask_app is not imported here so registry.core modules can be
# imported without building an application
