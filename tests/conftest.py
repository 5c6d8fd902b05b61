"""Pytest shared fixtures: in-memory app, fake directory and network guard."""
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any registry imports
os.environ.setdefault("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")

import pytest
import requests

from registry.config.settings import AppConfig
from registry.core import audit
from registry.core.directory import DirectoryUnavailableError
from registry.core.identity import Collaboration, Group, GroupMember, MemberProfile, SessionIdentity
from registry.core.models import db
from registry.flask_app import create_app


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a live directory or identity provider.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _stub_get(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP GET in unit test: {url}")

    def _stub_post(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    monkeypatch.setattr(requests, "get", _stub_get)
    monkeypatch.setattr(requests, "post", _stub_post)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Bypass mode by default and audit events written under tmp_path."""
    monkeypatch.delenv("FEATURE_FEDERATED_AUTH", raising=False)
    audit_dir = tmp_path / "audit"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_dir / "registry-events.jsonl")


@pytest.fixture()
def federated(monkeypatch):
    """Turn federated authentication on for the duration of a test."""
    monkeypatch.setenv("FEATURE_FEDERATED_AUTH", "true")


# ─────────────────────────────────────────────────────────────────────────────
# Fake Directory
# ─────────────────────────────────────────────────────────────────────────────
class FakeDirectory:
    """In-memory stand-in for DirectoryClient that records every call."""

    def __init__(self):
        self.groups: dict[str, Group] = {}
        self.profiles: dict[str, MemberProfile] = {}
        self.unavailable: set[str] = set()
        self.calls: list[tuple] = []

    def add_group(self, group: Group) -> Group:
        self.groups[group.scim_id] = group
        return group

    def add_profile(self, member_id: str, email: str, given: str = "Ada", family: str = "Lovelace", profile_id=None):
        profile = MemberProfile(
            id=profile_id or member_id,
            display_name=f"{given} {family}",
            given_name=given,
            family_name=family,
            email=email,
        )
        self.profiles[member_id] = profile
        return profile

    def get_group(self, scim_id, urn=None):
        self.calls.append(("get_group", scim_id))
        if scim_id in self.unavailable:
            raise DirectoryUnavailableError(f"/Groups/{scim_id}", "timed out")
        return self.groups.get(scim_id)

    def get_all_groups(self):
        self.calls.append(("get_all_groups",))
        return list(self.groups.values())

    def get_member_profile(self, member_id):
        self.calls.append(("get_member_profile", member_id))
        if member_id in self.unavailable:
            raise DirectoryUnavailableError(f"/Users/{member_id}", "timed out")
        return self.profiles.get(member_id)


@pytest.fixture()
def directory():
    return FakeDirectory()


# ─────────────────────────────────────────────────────────────────────────────
# Builders
# ─────────────────────────────────────────────────────────────────────────────
def make_group(scim_id, display_name="Test Group", description="Test Description", members=(), urn=None):
    return Group(
        scim_id=scim_id,
        display_name=display_name,
        description=description,
        urn=urn or f"urn:mace:surf.nl:sram:group:uu:{scim_id}",
        members=[GroupMember(scim_id=m, display_name=m) for m in members],
    )


def make_identity(collaborations=(), sram_id="alice@sram.surf.nl", email="alice@uu.nl"):
    return SessionIdentity(
        sram_id=sram_id,
        name="Alice Example",
        given_name="Alice",
        family_name="Example",
        email=email,
        collaborations=list(collaborations),
    )


def make_collaboration(group, groups=()):
    return Collaboration(organisation="uu", group=group, groups=list(groups))


def make_config(tmp_path, **overrides):
    base = dict(
        federated_auth_enabled=False,
        secret_key="test-secret",
        session_cookie_secure=False,
        session_type="filesystem",
        session_dir=str(tmp_path / "sessions"),
        database_url="sqlite:///:memory:",
        scim_url="https://scim.test/api/scim/v2",
        scim_secret="scim-token",
        directory_timeout=1.0,
        oidc_server_metadata_url="",
        oidc_client_id="registry-test",
        oidc_redirect_uri="http://localhost/session/callback",
        allowed_redirect_uris=["https://portal.test/after-login"],
        super_admin_emails=["root@uu.nl"],
    )
    base.update(overrides)
    return AppConfig(**base)


# ─────────────────────────────────────────────────────────────────────────────
# Flask App / Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app(tmp_path, directory):
    """Flask app on an in-memory database with the fake directory wired in."""
    flask_app = create_app(make_config(tmp_path), directory=directory)
    flask_app.config.update(TESTING=True)

    with flask_app.app_context():
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a reachable directory)"
    )
