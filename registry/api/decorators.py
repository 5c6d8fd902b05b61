"""
Flask decorators for project authorization.

Route guards resolve the session identity and check the project role with
registry.core.access before the view runs.
"""

import logging
from functools import wraps

from flask import g, jsonify

from registry.api.session import get_resolver
from registry.core.access import user_may_access_project
from registry.core.models import RoleType

logger = logging.getLogger(__name__)


def require_project_role(role_type: RoleType, param: str = "project_id"):
    """
    Decorator requiring the current user to hold role_type on a project.

    Args:
        role_type: Role the user must hold (tier overrides apply)
        param: Name of the view argument carrying the project id

    Returns:
        Decorated view; 403 JSON response when the check fails.
        NotAuthenticated / SessionUnavailable propagate to the error handlers.

    Example:
        @bp.route("/projects/<int:project_id>/sync", methods=["POST"])
        @require_project_role(RoleType.ADMIN)
        def sync(project_id):
            ...
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            resolver = get_resolver()
            identity = resolver.current_identity()
            if identity.user_id is None:
                identity = resolver.refresh(identity)

            project_id = kwargs.get(param)
            if not user_may_access_project(identity.user_id, project_id, role_type):
                logger.warning(
                    f"Denied {fn.__name__}: user={identity.user_id} project={project_id} role={RoleType(role_type).value}"
                )
                return jsonify({
                    "error": "Forbidden",
                    "message": f"Required role: {RoleType(role_type).value}",
                }), 403

            g.identity = identity
            return fn(*args, **kwargs)

        return wrapper
    return decorator
