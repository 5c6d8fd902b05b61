"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from tempfile import gettempdir
from typing import Optional

DEFAULT_SCIM_URL = "https://sram.surf.nl/api/scim/v2"
DEFAULT_DIRECTORY_TIMEOUT = 5.0


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


def _env_flag(var_name: str, default: bool) -> bool:
    value = os.environ.get(var_name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(var_name: str, lower: bool = False) -> list[str]:
    items = []
    for item in os.environ.get(var_name, "").split(","):
        item = item.strip()
        if not item:
            continue
        items.append(item.lower() if lower else item)
    return items


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode (default only; FeatureFlags re-reads FEATURE_FEDERATED_AUTH per call)
    federated_auth_enabled: bool

    # Flask
    secret_key: str
    secret_key_fallbacks: list[str] = field(default_factory=list)
    session_cookie_secure: bool = True
    session_type: str = "filesystem"
    session_dir: str = ""

    # Database
    database_url: str = "sqlite:///registry.db"

    # SCIM directory
    scim_url: str = DEFAULT_SCIM_URL
    scim_secret: str = ""
    directory_timeout: float = DEFAULT_DIRECTORY_TIMEOUT

    # OIDC Client
    oidc_server_metadata_url: str = ""
    oidc_client_id: str = ""
    oidc_client_secret: str = ""
    oidc_redirect_uri: str = ""
    allowed_redirect_uris: list[str] = field(default_factory=list)

    # Permissions
    super_admin_emails: list[str] = field(default_factory=list)

    # Audit
    audit_log_signing_key: str = ""

    @property
    def mode_label(self) -> str:
        return "FEDERATED" if self.federated_auth_enabled else "DEVELOPMENT"


def _get_or_generate(var_name: str, dev_default: Optional[str] = None, required: bool = True, federated: bool = True) -> str:
    """Get environment variable or use development default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if not federated and dev_default is not None:
        print(f"[dev-mode] Using default for {var_name}")
        return dev_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required when federated authentication is enabled.")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    federated = _env_flag("FEATURE_FEDERATED_AUTH", False)

    # ─────────────────────────────────────────────────────────────────────────
    # Load secrets from /run/secrets (Docker secrets pattern)
    # Priority: /run/secrets > environment variables
    # ─────────────────────────────────────────────────────────────────────────

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if federated:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")
        secret_key = secrets.token_urlsafe(48)
        print("[dev-mode] Generated temporary FLASK_SECRET_KEY")

    # SCIM bearer token
    scim_secret = _load_secret_from_file("sram_scim_secret", "SRAM_SCIM_SECRET") or ""
    if not scim_secret and federated:
        raise RuntimeError("SRAM_SCIM_SECRET not found in /run/secrets or environment")

    # OIDC client secret
    oidc_client_secret = _load_secret_from_file("oidc_client_secret", "OIDC_CLIENT_SECRET") or ""

    # Audit log signing key
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if audit_log_signing_key:
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key

    secret_key_fallbacks = _env_list("FLASK_SECRET_KEY_FALLBACKS")

    # Session store
    session_cookie_secure = _env_flag("FLASK_SESSION_COOKIE_SECURE", True)
    session_type = os.environ.get("FLASK_SESSION_TYPE", "filesystem")
    session_dir = os.environ.get("FLASK_SESSION_DIR") or os.path.join(gettempdir(), "registry_flask_session")

    # Database
    database_url = _get_or_generate(
        "DATABASE_URL",
        dev_default="sqlite:///registry.db",
        federated=federated,
    )

    # SCIM directory
    scim_url = os.environ.get("SRAM_SCIM_URL", DEFAULT_SCIM_URL).rstrip("/")
    timeout_raw = os.environ.get("DIRECTORY_TIMEOUT", "")
    try:
        directory_timeout = float(timeout_raw) if timeout_raw else DEFAULT_DIRECTORY_TIMEOUT
    except ValueError:
        raise RuntimeError(f"DIRECTORY_TIMEOUT must be a number of seconds, got {timeout_raw!r}")

    # OIDC
    oidc_server_metadata_url = _get_or_generate(
        "OIDC_SERVER_METADATA_URL",
        dev_default="",
        federated=federated,
    )
    oidc_client_id = _get_or_generate("OIDC_CLIENT_ID", dev_default="registry-dev", federated=federated)
    oidc_redirect_uri = _get_or_generate(
        "OIDC_REDIRECT_URI",
        dev_default="http://localhost:5000/session/callback",
        federated=federated,
    )
    allowed_redirect_uris = _env_list("ALLOWED_REDIRECT_URIS")

    # Permissions
    super_admin_emails = _env_list("SUPER_ADMIN_EMAILS", lower=True)

    cfg = AppConfig(
        federated_auth_enabled=federated,
        secret_key=secret_key,
        secret_key_fallbacks=secret_key_fallbacks,
        session_cookie_secure=session_cookie_secure,
        session_type=session_type,
        session_dir=session_dir,
        database_url=database_url,
        scim_url=scim_url,
        scim_secret=scim_secret,
        directory_timeout=directory_timeout,
        oidc_server_metadata_url=oidc_server_metadata_url,
        oidc_client_id=oidc_client_id,
        oidc_client_secret=oidc_client_secret,
        oidc_redirect_uri=oidc_redirect_uri,
        allowed_redirect_uris=allowed_redirect_uris,
        super_admin_emails=super_admin_emails,
        audit_log_signing_key=audit_log_signing_key,
    )

    print(f"[settings] Mode={cfg.mode_label}; scim={scim_url}; client_id={oidc_client_id}")

    if not federated:
        print("[settings] WARNING: Development identity in use. Do not deploy with FEATURE_FEDERATED_AUTH=false.")

    return cfg
