"""Project access checks.

user_has_role_in_project() is the exact (user, project, role type) check.
user_may_access_project() layers the account-wide permission tiers on top
of it and is what route guards call.
"""
from __future__ import annotations
from typing import Optional

from sqlalchemy import select

from registry.core.models import PermissionLevel, Project, ProjectRole, RoleType, User, db, user_roles


def _coerce_id(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_role_type(role_type) -> Optional[RoleType]:
    try:
        return RoleType(role_type)
    except ValueError:
        return None


def user_has_role_in_project(user_id, project_id, role_type) -> bool:
    """Check whether the user holds a role of role_type on the project.

    Read-only. Unknown users, unknown projects, unknown role types and ids
    that are not integers all yield False.
    """
    user_id, project_id = _coerce_id(user_id), _coerce_id(project_id)
    if user_id is None or project_id is None:
        return False
    wanted = _coerce_role_type(role_type)
    if wanted is None:
        return False

    stmt = (
        select(ProjectRole.id)
        .join(user_roles, user_roles.c.role_id == ProjectRole.id)
        .where(
            user_roles.c.user_id == user_id,
            ProjectRole.project_id == project_id,
            ProjectRole.type == wanted,
        )
        .limit(1)
    )
    return db.session.execute(stmt).first() is not None


def user_may_access_project(user_id, project_id, role_type) -> bool:
    """Route guard check including permission tier overrides.

    - Super admins pass everywhere
    - System admins pass on projects in their assigned lectorates or organisations
    - Everyone else needs the exact project role
    """
    user_id, project_id = _coerce_id(user_id), _coerce_id(project_id)
    if user_id is None or project_id is None:
        return False
    user = db.session.get(User, user_id)
    if user is None:
        return False

    if user.permission_level == PermissionLevel.SUPER_ADMIN:
        return True

    if user.permission_level == PermissionLevel.SYSTEM_ADMIN:
        project = db.session.get(Project, project_id)
        if project is not None:
            if project.lectorate and project.lectorate in (user.assigned_lectorates or []):
                return True
            if project.owner_organisation and project.owner_organisation in (user.assigned_organisations or []):
                return True

    return user_has_role_in_project(user_id, project_id, role_type)
