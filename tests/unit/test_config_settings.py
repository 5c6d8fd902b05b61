import pytest

from registry.config import settings
from registry.config.settings import _get_or_generate, load_settings

FEDERATED_ENV = {
    "FEATURE_FEDERATED_AUTH": "true",
    "FLASK_SECRET_KEY": "flask-secret",
    "SRAM_SCIM_SECRET": "scim-token",
    "DATABASE_URL": "postgresql://registry@db/registry",
    "OIDC_SERVER_METADATA_URL": "https://proxy.sram.surf.nl/.well-known/openid-configuration",
    "OIDC_CLIENT_ID": "registry",
    "OIDC_REDIRECT_URI": "https://registry.test/session/callback",
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in list(FEDERATED_ENV) + [
        "SUPER_ADMIN_EMAILS",
        "ALLOWED_REDIRECT_URIS",
        "DIRECTORY_TIMEOUT",
        "SRAM_SCIM_URL",
        "FLASK_SECRET_KEY_FALLBACKS",
        "OIDC_CLIENT_SECRET",
    ]:
        monkeypatch.delenv(name, raising=False)

    # Point /run/secrets at an empty directory
    real_path = settings.Path

    def fake_path(target):
        if str(target) == "/run/secrets":
            return tmp_path / "secrets"
        return real_path(target)

    monkeypatch.setattr(settings, "Path", fake_path)


def test_development_defaults():
    cfg = load_settings()

    assert cfg.federated_auth_enabled is False
    assert cfg.mode_label == "DEVELOPMENT"
    assert cfg.secret_key
    assert cfg.database_url == "sqlite:///registry.db"
    assert cfg.scim_url == "https://sram.surf.nl/api/scim/v2"
    assert cfg.directory_timeout == 5.0


def test_federated_mode_reads_environment(monkeypatch):
    for name, value in FEDERATED_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("SUPER_ADMIN_EMAILS", "Root@UU.nl, ops@uu.nl")
    monkeypatch.setenv("DIRECTORY_TIMEOUT", "2.5")

    cfg = load_settings()

    assert cfg.mode_label == "FEDERATED"
    assert cfg.secret_key == "flask-secret"
    assert cfg.scim_secret == "scim-token"
    assert cfg.database_url == "postgresql://registry@db/registry"
    assert cfg.super_admin_emails == ["root@uu.nl", "ops@uu.nl"]
    assert cfg.directory_timeout == 2.5


@pytest.mark.parametrize("missing", ["FLASK_SECRET_KEY", "SRAM_SCIM_SECRET", "DATABASE_URL", "OIDC_CLIENT_ID"])
def test_federated_mode_requires_secrets(monkeypatch, missing):
    for name, value in FEDERATED_ENV.items():
        if name != missing:
            monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match=missing):
        load_settings()


def test_secret_file_takes_priority(monkeypatch, tmp_path):
    secrets_dir = tmp_path / "secrets"
    secrets_dir.mkdir()
    (secrets_dir / "sram_scim_secret").write_text("from-file\n")
    monkeypatch.setenv("SRAM_SCIM_SECRET", "from-env")

    assert load_settings().scim_secret == "from-file"


def test_invalid_timeout_is_rejected(monkeypatch):
    monkeypatch.setenv("DIRECTORY_TIMEOUT", "soon")

    with pytest.raises(RuntimeError, match="DIRECTORY_TIMEOUT"):
        load_settings()


def test_get_or_generate_uses_dev_default(monkeypatch):
    monkeypatch.delenv("SOME_SETTING", raising=False)
    assert _get_or_generate("SOME_SETTING", dev_default="fallback", federated=False) == "fallback"


def test_get_or_generate_optional_in_federated_mode(monkeypatch):
    monkeypatch.delenv("SOME_SETTING", raising=False)
    assert _get_or_generate("SOME_SETTING", required=False, federated=True) == ""
