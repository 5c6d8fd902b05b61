"""Project sync and permission routes."""
from __future__ import annotations

from flask import Blueprint, g, jsonify

from registry.api.decorators import require_project_role
from registry.api.session import get_directory, get_resolver
from registry.core.access import user_has_role_in_project, user_may_access_project
from registry.core.exceptions import GroupNotFound, ProjectNotFound
from registry.core.models import Project, ProjectRole, RoleType, db
from registry.core.project_sync import ProjectSyncer

bp = Blueprint("projects", __name__)


def _project_summary(project: Project) -> dict:
    return {
        "id": project.id,
        "scim_id": project.scim_id,
        "title": project.title,
        "description": project.description,
        "last_updated": project.last_updated.isoformat() if project.last_updated else None,
        "members": len(project.users),
        "roles": [
            {"id": role.id, "type": role.type.value, "urn": role.urn, "members": len(role.users)}
            for role in project.roles
        ],
    }


@bp.route("/<int:project_id>/sync", methods=["POST"])
@require_project_role(RoleType.ADMIN)
def sync_project(project_id: int):
    """Re-sync project membership and roles from the directory."""
    project = ProjectSyncer(get_directory()).sync_project(project_id)
    return jsonify(_project_summary(project))


@bp.route("/<int:project_id>/roles/<int:role_id>/sync", methods=["POST"])
@require_project_role(RoleType.ADMIN)
def sync_project_role(project_id: int, role_id: int):
    """Re-sync one role's membership from the directory."""
    project = db.session.get(Project, project_id)
    if project is None:
        raise ProjectNotFound(project_id)
    role = db.session.get(ProjectRole, role_id)
    if role is None or role.project_id != project.id:
        raise GroupNotFound(str(role_id))

    role = ProjectSyncer(get_directory()).sync_project_role(project, role)
    return jsonify({"id": role.id, "type": role.type.value, "urn": role.urn, "members": len(role.users)})


@bp.route("/<int:project_id>/permissions")
def permissions(project_id: int):
    """Report which project roles the current user holds."""
    resolver = get_resolver()
    identity = resolver.current_identity()
    if identity.user_id is None:
        identity = resolver.refresh(identity)

    g.identity = identity
    return jsonify({
        "project_id": project_id,
        "user_id": identity.user_id,
        "roles": {
            role.value: user_has_role_in_project(identity.user_id, project_id, role)
            for role in RoleType
        },
        "access": {
            role.value: user_may_access_project(identity.user_id, project_id, role)
            for role in RoleType
        },
    })
