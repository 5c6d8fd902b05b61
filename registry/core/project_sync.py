"""Targeted re-sync of one project against its directory group."""
from __future__ import annotations
import logging
from datetime import datetime, timezone

from registry.core import audit
from registry.core.exceptions import GroupNotFound, ProjectNotFound, ProjectNotInDirectory
from registry.core.models import Project, ProjectRole, db
from registry.core.reconciler import ProfileLookup, find_or_create_user

logger = logging.getLogger(__name__)


class ProjectSyncer:
    """Re-fetch a project's groups from the directory and merge their members.

    Project membership only grows: members missing locally are added, members
    no longer in the directory are kept. Role membership is replaced with the
    directory snapshot, restricted to the project's members.

    Group lookups are not softened: a DirectoryError on the project or a role
    group fails the whole sync and nothing is committed.
    """

    def __init__(self, directory):
        self.directory = directory

    def sync_project(self, project_id: int) -> Project:
        """Sync membership and roles of one project.

        Raises:
            ProjectNotFound: No local project with this id
            ProjectNotInDirectory: The directory has no group for the project
            GroupNotFound: A role group of the project is missing from the directory
            DirectoryError: The directory could not be queried
        """
        project = db.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFound(project_id)

        try:
            added = self._sync(project)
        except Exception:
            db.session.rollback()
            audit.safe_log_event("project_sync_failed", str(project_id), success=False)
            raise

        db.session.commit()
        audit.safe_log_event("project_synced", project.scim_id or str(project_id),
                             details={"members_added": added})
        logger.info("Synced project %s: %d member(s) added", project_id, added)
        return project

    def _sync(self, project: Project) -> int:
        if not project.scim_id:
            raise ProjectNotInDirectory(project.id, None)

        group = self.directory.get_group(project.scim_id)
        if group is None:
            raise ProjectNotInDirectory(project.id, project.scim_id)

        profiles = ProfileLookup(self.directory)
        known = {user.scim_id for user in project.users}
        added = 0
        for member in group.members:
            if member.scim_id in known:
                continue
            profile = profiles.get(member.scim_id)
            if profile is None:
                logger.info("Skipping member %s of project %s: no directory profile", member.scim_id, project.id)
                continue
            if profile.id in known:
                continue
            user, _ = find_or_create_user(profile)
            project.users.append(user)
            known.add(profile.id)
            added += 1

        for role in list(project.roles):
            self.sync_project_role(project, role, commit=False)

        project.last_updated = datetime.now(timezone.utc)
        return added

    def sync_project_role(self, project: Project, role: ProjectRole, commit: bool = True) -> ProjectRole:
        """Replace one role's membership with the directory snapshot.

        Raises:
            GroupNotFound: The directory has no group for the role
            DirectoryError: The directory could not be queried
        """
        if not role.scim_id:
            raise GroupNotFound(role.urn)

        group = self.directory.get_group(role.scim_id, urn=role.urn)
        if group is None:
            raise GroupNotFound(role.scim_id)

        if group.display_name:
            role.name = group.display_name
        role.description = group.description

        member_ids = set(group.member_ids)
        role.users = [user for user in project.users if user.scim_id in member_ids]

        if commit:
            db.session.commit()
            audit.safe_log_event("role_members_replaced", role.urn, details={"members": len(role.users)})
        return role
