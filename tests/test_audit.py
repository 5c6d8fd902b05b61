"""Unit tests for the signed audit trail."""

import json

import pytest

from registry.core import audit


@pytest.fixture
def audit_file(monkeypatch):
    """Audit file under the per-test directory set up in conftest."""
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    return audit.AUDIT_LOG_FILE


def test_log_event_creates_file(audit_file):
    """Logging creates the file with one signed event."""
    assert not audit_file.exists()

    audit.log_event(
        "project_created",
        "g1",
        operator="alice@sram.surf.nl",
        details={"title": "Test Group"},
    )

    with audit_file.open("r") as f:
        event = json.loads(f.readline())

    assert event["event_type"] == "project_created"
    assert event["subject"] == "g1"
    assert event["operator"] == "alice@sram.surf.nl"
    assert event["success"] is True
    assert event["details"] == {"title": "Test Group"}
    assert "timestamp" in event
    assert event["signature"]


def test_verify_audit_log_with_valid_signatures(audit_file):
    for i in range(3):
        audit.log_event("user_created", f"u{i}")

    assert audit.verify_audit_log() == (3, 3)


def test_verify_audit_log_detects_tampering(audit_file):
    audit.log_event("user_linked", "u1", operator="alice@sram.surf.nl")

    with audit_file.open("r") as f:
        event = json.loads(f.readline())
    event["subject"] = "mallory"
    with audit_file.open("w") as f:
        f.write(json.dumps(event) + "\n")

    assert audit.verify_audit_log() == (1, 0)


def test_log_event_without_signing_key(audit_file, monkeypatch):
    """Events are still written, unsigned, when no key is configured."""
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "")

    audit.log_event("member_skipped", "m1", success=False)

    with audit_file.open("r") as f:
        event = json.loads(f.readline())
    assert "signature" not in event
    assert event["success"] is False


def test_audit_file_permissions(audit_file):
    audit.log_event("login", "alice@sram.surf.nl")

    assert audit.AUDIT_LOG_DIR.stat().st_mode & 0o777 == 0o700
    assert audit_file.stat().st_mode & 0o777 == 0o600


def test_safe_log_event_reports_failure(monkeypatch):
    def broken(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(audit, "log_event", broken)

    assert audit.safe_log_event("logout", "session") is False


def test_verify_empty_audit_log(audit_file):
    assert audit.verify_audit_log() == (0, 0)
