"""Session identity resolution.

Two implementations share the IdentityResolver interface:

    FederatedIdentityResolver  - claims → SessionIdentity, stored in the Flask session
    BypassIdentityResolver     - fixed development identity, no directory or session access

resolver_for() picks one per call from the federated-auth feature flag, so a
flag flip takes effect on the next request.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional

from flask import has_request_context, session
from flask.sessions import NullSession

from registry.core.claims import extract_claims, parse_collaboration_refs
from registry.core.exceptions import InvalidPrincipal, NotAuthenticated, SessionUnavailable
from registry.core.identity import SESSION_KEY, SessionIdentity, development_identity
from registry.core.models import PermissionLevel, User, db
from registry.core.reconciler import seed_development_account

logger = logging.getLogger(__name__)


class IdentityResolver(ABC):
    """Contract shared by federated and bypass resolvers."""

    @abstractmethod
    def resolve(self, principal: Mapping[str, Any]) -> SessionIdentity:
        ...

    @abstractmethod
    def current_identity(self) -> SessionIdentity:
        ...

    @abstractmethod
    def refresh(self, identity: SessionIdentity) -> SessionIdentity:
        ...

    @abstractmethod
    def persist(self, identity: SessionIdentity) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


def find_user_for_identity(identity: SessionIdentity) -> Optional[User]:
    """Return the account whose sram_id matches the identity.

    sram_id is not unique: accounts created during reconciliation carry the
    sram_id of the session that created them. An account whose email equals
    the session email wins; a sole match without a recorded email is
    accepted as well.
    """
    candidates = User.query.filter_by(sram_id=identity.sram_id).order_by(User.id).all()
    email = (identity.email or "").casefold()
    for user in candidates:
        if email and (user.email or "").casefold() == email:
            return user
    if len(candidates) == 1 and not candidates[0].email:
        return candidates[0]
    if candidates:
        logger.warning("sram_id=%s matches %d accounts and none by email", identity.sram_id, len(candidates))
    return None


class FederatedIdentityResolver(IdentityResolver):
    """Resolver for logins through the federated identity provider."""

    def __init__(self, mapper, super_admin_emails: Iterable[str] = ()):
        """
        Args:
            mapper: CollaborationMapper used to turn entitlements into collaborations
            super_admin_emails: Emails promoted to the super admin tier on refresh
        """
        self.mapper = mapper
        self.super_admin_emails = {e.lower() for e in super_admin_emails}

    def resolve(self, principal: Mapping[str, Any]) -> SessionIdentity:
        result = extract_claims(principal)
        if not result.ok:
            logger.warning("Rejected principal: %s", result.error)
            raise InvalidPrincipal(result.missing[0])

        values = result.values
        refs = parse_collaboration_refs(values["roles"])
        collaborations = self.mapper.map(refs) if refs else []

        return SessionIdentity(
            sram_id=values["sram_id"],
            name=values["name"],
            given_name=values["given_name"],
            family_name=values["family_name"],
            email=values["email"],
            collaborations=collaborations,
        )

    def current_identity(self) -> SessionIdentity:
        store = self._store()
        data = store.get(SESSION_KEY)
        if not data:
            raise NotAuthenticated("No session identity stored")
        try:
            return SessionIdentity.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Stored session identity is unreadable: %s", exc)
            raise SessionUnavailable("Stored session identity is unreadable")

    def refresh(self, identity: SessionIdentity) -> SessionIdentity:
        user = find_user_for_identity(identity)
        if user is None:
            logger.info("No account for sram_id=%s yet", identity.sram_id)
            return identity

        identity.user_id = user.id
        self._promote_super_admin(user, identity)
        self.persist(identity)
        return identity

    def persist(self, identity: SessionIdentity) -> None:
        self._store()[SESSION_KEY] = identity.to_dict()

    def clear(self) -> None:
        self._store().pop(SESSION_KEY, None)

    def _promote_super_admin(self, user: User, identity: SessionIdentity) -> None:
        emails = {(user.email or "").lower(), (identity.email or "").lower()} - {""}
        if not emails & self.super_admin_emails:
            return
        if user.permission_level == PermissionLevel.SUPER_ADMIN:
            return
        user.permission_level = PermissionLevel.SUPER_ADMIN
        db.session.commit()
        logger.info("Promoted user %s to super admin", user.id)

    @staticmethod
    def _store():
        if not has_request_context():
            raise SessionUnavailable("No request context; session store unavailable")
        if isinstance(session._get_current_object(), NullSession):
            raise SessionUnavailable("Session store is not configured")
        return session


class BypassIdentityResolver(IdentityResolver):
    """Development resolver: always the fixed identity, nothing stored in the session.

    refresh() seeds the identity's project, account and admin role on first use.
    """

    def resolve(self, principal: Mapping[str, Any]) -> SessionIdentity:
        return development_identity()

    def current_identity(self) -> SessionIdentity:
        return development_identity()

    def refresh(self, identity: SessionIdentity) -> SessionIdentity:
        user = find_user_for_identity(identity)
        if user is None:
            user = seed_development_account(identity)
        if user is not None:
            identity.user_id = user.id
        return identity

    def persist(self, identity: SessionIdentity) -> None:
        pass

    def clear(self) -> None:
        pass


def resolver_for(flags, mapper_factory, super_admin_emails: Iterable[str] = ()) -> IdentityResolver:
    """Select the resolver for the current flag value.

    Args:
        flags: FeatureFlags instance, re-read on every call
        mapper_factory: Zero-argument callable building a CollaborationMapper;
            only invoked in federated mode
        super_admin_emails: Emails promoted to super admin on refresh
    """
    if flags.federated_auth():
        return FederatedIdentityResolver(mapper_factory(), super_admin_emails)
    return BypassIdentityResolver()
