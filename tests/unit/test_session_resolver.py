"""Tests for session identity resolution."""
from unittest.mock import MagicMock

import pytest

from registry.core.claims import CollaborationRef
from registry.core.exceptions import InvalidPrincipal, NotAuthenticated, SessionUnavailable
from registry.core.feature_flags import FeatureFlags
from registry.core.identity import SESSION_KEY, development_identity
from registry.core.models import PermissionLevel, Person, Project, ProjectRole, RoleType, User, db
from registry.core.session_resolver import (
    BypassIdentityResolver,
    FederatedIdentityResolver,
    find_user_for_identity,
    resolver_for,
)
from tests.conftest import make_collaboration, make_group, make_identity


@pytest.fixture()
def mapper():
    mapper = MagicMock()
    mapper.map.return_value = [make_collaboration(make_group("research"))]
    return mapper


@pytest.fixture()
def resolver(app, mapper):
    return FederatedIdentityResolver(mapper, super_admin_emails=["root@uu.nl"])


def _add_user(scim_id, sram_id, email):
    user = User(scim_id=scim_id, sram_id=sram_id, person=Person(name=scim_id, email=email))
    db.session.add(user)
    db.session.commit()
    return user


# ─────────────────────────────────────────────────────────────────────────────
# resolve()
# ─────────────────────────────────────────────────────────────────────────────
def test_resolve_builds_identity_from_claims(resolver, mapper):
    identity = resolver.resolve({
        "sub": "alice@sram.surf.nl",
        "name": "Alice Example",
        "given_name": "Alice",
        "family_name": "Example",
        "email": "alice@uu.nl",
        "eduperson_entitlement": [
            "urn:mace:surf.nl:sram:group:uu:research",
            "urn:mace:surf.nl:sram:group:uu:research:conflux-admin",
        ],
    })

    assert identity.sram_id == "alice@sram.surf.nl"
    assert identity.email == "alice@uu.nl"
    assert identity.user_id is None
    assert [c.group.scim_id for c in identity.collaborations] == ["research"]
    mapper.map.assert_called_once_with([CollaborationRef("uu", "research", ["conflux-admin"])])


def test_resolve_without_entitlements_skips_directory(resolver, mapper):
    identity = resolver.resolve({"sub": "alice@sram.surf.nl"})

    assert identity.collaborations == []
    mapper.map.assert_not_called()


def test_resolve_rejects_principal_without_subject(resolver):
    with pytest.raises(InvalidPrincipal) as excinfo:
        resolver.resolve({"email": "alice@uu.nl"})

    assert excinfo.value.claim == "personIdentifier"


# ─────────────────────────────────────────────────────────────────────────────
# Session store
# ─────────────────────────────────────────────────────────────────────────────
def test_persist_then_current_identity_round_trips(app, resolver):
    stored = make_identity([make_collaboration(make_group("g1", members=["m1"]))])

    with app.test_request_context("/"):
        resolver.persist(stored)
        restored = resolver.current_identity()

    assert restored == stored


def test_current_identity_without_stored_identity(app, resolver):
    with app.test_request_context("/"):
        with pytest.raises(NotAuthenticated):
            resolver.current_identity()


def test_unreadable_stored_identity(app, resolver):
    from flask import session

    with app.test_request_context("/"):
        session[SESSION_KEY] = {"name": "no subject"}
        with pytest.raises(SessionUnavailable):
            resolver.current_identity()


def test_store_outside_request_is_unavailable(resolver):
    with pytest.raises(SessionUnavailable):
        resolver.current_identity()
    with pytest.raises(SessionUnavailable):
        resolver.persist(make_identity())


def test_clear_removes_identity(app, resolver):
    with app.test_request_context("/"):
        resolver.persist(make_identity())
        resolver.clear()
        with pytest.raises(NotAuthenticated):
            resolver.current_identity()


# ─────────────────────────────────────────────────────────────────────────────
# refresh()
# ─────────────────────────────────────────────────────────────────────────────
def test_refresh_without_account_keeps_user_id_empty(app, resolver):
    with app.test_request_context("/"):
        identity = resolver.refresh(make_identity())

    assert identity.user_id is None


def test_refresh_attaches_account_and_persists(app, resolver):
    user = _add_user("alice", "alice@sram.surf.nl", "alice@uu.nl")

    with app.test_request_context("/"):
        identity = resolver.refresh(make_identity())
        stored = resolver.current_identity()

    assert identity.user_id == user.id
    assert stored.user_id == user.id


def test_refresh_promotes_configured_super_admin(app, resolver):
    user = _add_user("root", "root@sram.surf.nl", "ROOT@uu.nl")

    with app.test_request_context("/"):
        resolver.refresh(make_identity(sram_id="root@sram.surf.nl", email="root@uu.nl"))

    assert db.session.get(User, user.id).permission_level == PermissionLevel.SUPER_ADMIN


def test_find_user_prefers_email_match(app):
    _add_user("other", "shared@sram.surf.nl", "other@uu.nl")
    mine = _add_user("mine", "shared@sram.surf.nl", "alice@uu.nl")

    found = find_user_for_identity(make_identity(sram_id="shared@sram.surf.nl", email="Alice@UU.nl"))

    assert found.id == mine.id


def test_find_user_refuses_ambiguous_match(app):
    _add_user("a", "shared@sram.surf.nl", "a@uu.nl")
    _add_user("b", "shared@sram.surf.nl", "b@uu.nl")

    assert find_user_for_identity(make_identity(sram_id="shared@sram.surf.nl", email="c@uu.nl")) is None


def test_find_user_accepts_sole_account_without_email(app):
    user = _add_user("solo", "solo@sram.surf.nl", None)

    assert find_user_for_identity(make_identity(sram_id="solo@sram.surf.nl")).id == user.id


# ─────────────────────────────────────────────────────────────────────────────
# Bypass mode and selection
# ─────────────────────────────────────────────────────────────────────────────
def test_bypass_resolver_returns_development_identity(app):
    resolver = BypassIdentityResolver()

    identity = resolver.current_identity()

    assert identity == development_identity()
    assert resolver.resolve({}) == development_identity()
    resolver.persist(identity)
    resolver.clear()


def test_development_identity_has_admin_role_group():
    identity = development_identity()

    collaboration = identity.collaborations[0]
    assert identity.email == "development@sram.surf.nl"
    assert collaboration.group.members[0].scim_id == collaboration.groups[0].members[0].scim_id
    assert collaboration.groups[0].urn.endswith(":conflux-cx_project_admin")


def test_resolver_for_follows_flag(monkeypatch):
    factory = MagicMock()
    flags = FeatureFlags()

    assert isinstance(resolver_for(flags, factory), BypassIdentityResolver)
    factory.assert_not_called()

    monkeypatch.setenv("FEATURE_FEDERATED_AUTH", "true")
    assert isinstance(resolver_for(flags, factory), FederatedIdentityResolver)
    factory.assert_called_once_with()


def test_bypass_refresh_seeds_development_account_once(app):
    resolver = BypassIdentityResolver()

    first = resolver.refresh(resolver.current_identity())
    second = resolver.refresh(resolver.current_identity())

    assert first.user_id is not None
    assert second.user_id == first.user_id
    assert User.query.count() == 1
    project = Project.query.one()
    role = ProjectRole.query.one()
    assert project.scim_id == "development"
    assert role.type == RoleType.ADMIN
    assert [u.id for u in role.users] == [first.user_id]
    assert [u.id for u in project.users] == [first.user_id]
