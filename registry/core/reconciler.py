"""
Collaboration Reconciler: merge a session's collaborations into the database

Runs once per login. Every collaboration carried by the SessionIdentity is
merged into Project, User and ProjectRole rows:

    Collaboration.group   ──> Project      (keyed by group scim_id)
    group.members         ──> User/Person  (keyed by directory profile id)
    Collaboration.groups  ──> ProjectRole  (keyed by project + URN)

Merge rules:
    - Directory values overwrite local title/description (last write wins)
    - An existing account only gets the session's sram_id when its email
      matches the session email
    - A member without a directory profile is skipped, never an error
    - Nothing is deleted
    - All writes are committed once, after every collaboration is processed
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError

from registry.core import audit
from registry.core.directory import DirectoryError
from registry.core.identity import Group, GroupMember, MemberProfile, SessionIdentity
from registry.core.models import Person, Project, ProjectRole, User, db, role_type_from_urn

logger = logging.getLogger(__name__)


def _emails_match(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return left.strip().casefold() == right.strip().casefold()


class ProfileLookup:
    """Per-pass cache of directory profile lookups.

    A lookup that fails with a DirectoryError is treated like a missing
    profile: the member is skipped and the failure is logged.
    """

    def __init__(self, directory):
        self.directory = directory
        self._cache: dict[str, Optional[MemberProfile]] = {}

    def get(self, member_id: str) -> Optional[MemberProfile]:
        if member_id in self._cache:
            return self._cache[member_id]
        try:
            profile = self.directory.get_member_profile(member_id)
        except DirectoryError as exc:
            logger.warning("Profile lookup for member %s failed: %s", member_id, exc)
            profile = None
        self._cache[member_id] = profile
        return profile


# ─────────────────────────────────────────────────────────────────────────────
# Shared upserts (also used by the targeted project syncer)
# ─────────────────────────────────────────────────────────────────────────────
def find_or_create_user(profile: MemberProfile, sram_id: Optional[str] = None) -> tuple[User, bool]:
    """Return the account for a directory profile, creating it with a Person if absent.

    Returns:
        (user, created)
    """
    user = User.query.filter_by(scim_id=profile.id).one_or_none()
    if user is not None:
        return user, False

    try:
        with db.session.begin_nested():
            person = Person(
                name=profile.name,
                given_name=profile.given_name,
                family_name=profile.family_name,
                email=profile.email,
            )
            user = User(scim_id=profile.id, sram_id=sram_id, person=person)
            db.session.add(user)
    except IntegrityError:
        logger.info("User %s created concurrently; using existing row", profile.id)
        return User.query.filter_by(scim_id=profile.id).one(), False
    return user, True


def find_or_create_project(group: Group) -> tuple[Project, bool]:
    """Return the project for a directory group, creating it if absent.

    Returns:
        (project, created)
    """
    project = Project.query.filter_by(scim_id=group.scim_id).one_or_none()
    if project is not None:
        return project, False

    now = datetime.now(timezone.utc)
    try:
        with db.session.begin_nested():
            project = Project(
                scim_id=group.scim_id,
                title=group.display_name,
                description=group.description,
                start_date=now,
                last_updated=now,
            )
            db.session.add(project)
    except IntegrityError:
        logger.info("Project %s created concurrently; using existing row", group.scim_id)
        return Project.query.filter_by(scim_id=group.scim_id).one(), False
    return project, True


def find_or_create_role(project: Project, group: Group) -> tuple[ProjectRole, bool]:
    """Return the role for (project, group URN), creating it if absent.

    Returns:
        (role, created)
    """
    role = ProjectRole.query.filter_by(project_id=project.id, urn=group.urn).one_or_none()
    if role is not None:
        return role, False

    try:
        with db.session.begin_nested():
            role = ProjectRole(
                project_id=project.id,
                type=role_type_from_urn(group.urn),
                urn=group.urn,
                scim_id=group.scim_id,
                name=group.display_name,
                description=group.description,
            )
            db.session.add(role)
    except IntegrityError:
        logger.info("Role %s on project %s created concurrently; using existing row", group.urn, project.id)
        return ProjectRole.query.filter_by(project_id=project.id, urn=group.urn).one(), False
    return role, True


# ─────────────────────────────────────────────────────────────────────────────
# Reconciler
# ─────────────────────────────────────────────────────────────────────────────
class CollaborationReconciler:
    """Merge a SessionIdentity's collaborations into persistent rows."""

    def __init__(self, directory, flags):
        """
        Args:
            directory: DirectoryClient (get_member_profile is the only call made)
            flags: FeatureFlags; reconciliation is a no-op unless federated auth is on
        """
        self.directory = directory
        self.flags = flags

    def reconcile(self, identity: SessionIdentity) -> None:
        if not self.flags.federated_auth():
            logger.debug("Federated auth disabled; skipping reconciliation")
            return
        if identity is None:
            raise ValueError("reconcile() requires a session identity")

        profiles = ProfileLookup(self.directory)
        operator = identity.sram_id

        for collaboration in identity.collaborations:
            project = self._upsert_project(collaboration.group, operator)
            resolved: dict[str, User] = {}

            for member in collaboration.group.members:
                user = self._upsert_member(member, identity, profiles)
                if user is None:
                    continue
                resolved[member.scim_id] = user
                if user not in project.users:
                    project.users.append(user)

            for role_group in collaboration.groups:
                self._upsert_role(project, role_group, resolved, profiles, operator)

        db.session.commit()
        logger.info(
            "Reconciled %d collaboration(s) for sram_id=%s",
            len(identity.collaborations),
            identity.sram_id,
        )

    def _upsert_project(self, group: Group, operator: str) -> Project:
        project, created = find_or_create_project(group)
        if created:
            audit.safe_log_event("project_created", group.scim_id, operator=operator,
                                 details={"title": group.display_name})
            return project

        project.title = group.display_name
        project.description = group.description
        project.last_updated = datetime.now(timezone.utc)
        audit.safe_log_event("project_updated", group.scim_id, operator=operator)
        return project

    def _upsert_member(self, member: GroupMember, identity: SessionIdentity, profiles: ProfileLookup) -> Optional[User]:
        profile = profiles.get(member.scim_id)
        if profile is None:
            logger.info("Skipping member %s: no directory profile", member.scim_id)
            audit.safe_log_event("member_skipped", member.scim_id, operator=identity.sram_id, success=False)
            return None

        user, created = find_or_create_user(profile, sram_id=identity.sram_id)
        if created:
            audit.safe_log_event("user_created", profile.id, operator=identity.sram_id)
            return user

        if user.sram_id == identity.sram_id:
            return user
        if _emails_match(user.email, identity.email):
            user.sram_id = identity.sram_id
            audit.safe_log_event("user_linked", profile.id, operator=identity.sram_id)
        else:
            logger.warning(
                "Refusing to attach sram_id=%s to user %s: email mismatch",
                identity.sram_id,
                user.scim_id,
            )
            audit.safe_log_event("user_link_refused", profile.id, operator=identity.sram_id, success=False)
        return user

    def _upsert_role(
        self,
        project: Project,
        group: Group,
        resolved: dict[str, User],
        profiles: ProfileLookup,
        operator: str,
    ) -> ProjectRole:
        role, created = find_or_create_role(project, group)
        if created:
            audit.safe_log_event("role_created", group.urn, operator=operator,
                                 details={"project": project.scim_id, "type": role.type.value})
        else:
            role.scim_id = group.scim_id
            role.name = group.display_name
            role.description = group.description

        for member in group.members:
            user = resolved.get(member.scim_id) or self._existing_user(member, profiles)
            if user is None:
                logger.info("Skipping role member %s of %s: no account", member.scim_id, group.urn)
                continue
            if user not in role.users:
                role.users.append(user)
        return role

    @staticmethod
    def _existing_user(member: GroupMember, profiles: ProfileLookup) -> Optional[User]:
        profile = profiles.get(member.scim_id)
        if profile is None:
            return None
        return User.query.filter_by(scim_id=profile.id).one_or_none()


# ─────────────────────────────────────────────────────────────────────────────
# Development mode
# ─────────────────────────────────────────────────────────────────────────────
def seed_development_account(identity: SessionIdentity) -> Optional[User]:
    """Write the development identity's projects, account and roles without the directory.

    Members of the identity's groups are materialised from the identity itself,
    so the bypass mode has an account that passes the route guards. Safe to
    call repeatedly.

    Returns:
        The account carrying the identity's sram_id, or None when the identity
        has no group members
    """
    account = None
    for collaboration in identity.collaborations:
        project, _ = find_or_create_project(collaboration.group)
        resolved: dict[str, User] = {}
        for member in collaboration.group.members:
            profile = MemberProfile(
                id=member.scim_id,
                display_name=identity.name,
                given_name=identity.given_name,
                family_name=identity.family_name,
                email=identity.email,
            )
            user, _ = find_or_create_user(profile, sram_id=identity.sram_id)
            resolved[member.scim_id] = user
            if user not in project.users:
                project.users.append(user)
            account = account or user

        for role_group in collaboration.groups:
            role, _ = find_or_create_role(project, role_group)
            for member in role_group.members:
                user = resolved.get(member.scim_id)
                if user is not None and user not in role.users:
                    role.users.append(user)

    db.session.commit()
    logger.info("Seeded development account for sram_id=%s", identity.sram_id)
    return account
