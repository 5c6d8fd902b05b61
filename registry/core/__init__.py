"""Core Business Logic Module

Identity and collaboration reconciliation, independent of the HTTP routes.

Module Structure:
    - directory/              : SCIM 2.0 directory client
    - identity.py             : SessionIdentity, Collaboration, Group value types
    - claims.py               : Claim extraction and entitlement parsing
    - collaboration_mapper.py : Entitlements → directory group snapshots
    - session_resolver.py     : Federated/bypass session identity resolvers
    - reconciler.py           : Collaboration → Project/User/Role upserts
    - project_sync.py         : Targeted per-project re-sync
    - access.py               : Project role checks for route guards
    - models.py               : SQLAlchemy models
    - audit.py                : Signed JSONL audit trail

Usage Pattern:
    Modules are not auto-imported; import explicitly when needed:
        from registry.core.reconciler import CollaborationReconciler
        from registry.core.access import user_has_role_in_project
"""
