"""Session routes and OIDC helpers.

Login flow (federated mode):
    /session/login → identity provider → /session/callback
    callback: resolve claims → persist → reconcile collaborations → refresh

In development (bypass) mode login skips the identity provider and the
fixed development identity is used.
"""
from __future__ import annotations
from urllib.parse import urlparse

from flask import Blueprint, current_app, jsonify, redirect, request, session
from authlib.integrations.flask_client import OAuth

from registry.core import audit
from registry.core.collaboration_mapper import CollaborationMapper
from registry.core.models import User, db
from registry.core.reconciler import CollaborationReconciler
from registry.core.session_resolver import resolver_for

bp = Blueprint("session", __name__)

# Module-level OAuth instance (initialized by create_app)
oauth: OAuth = None

REDIRECT_KEY = "post_login_redirect"
DEFAULT_REDIRECT = "/session"


def init_oauth(app, cfg):
    """Initialize the OIDC client when a provider is configured."""
    global oauth

    oauth = OAuth(app)
    if not cfg.oidc_server_metadata_url:
        app.logger.info("OIDC provider not configured; federated login unavailable")
        return oauth

    oauth.register(
        name="sram",
        server_metadata_url=cfg.oidc_server_metadata_url,
        client_id=cfg.oidc_client_id,
        client_secret=cfg.oidc_client_secret or None,
        client_kwargs={"scope": "openid profile email eduperson_entitlement"},
    )
    return oauth


def get_oidc_client():
    """Get the registered OIDC client."""
    client = oauth.create_client("sram") if oauth is not None else None
    if client is None:
        raise RuntimeError("OIDC provider not configured. Set OIDC_SERVER_METADATA_URL.")
    return client


# ─────────────────────────────────────────────────────────────────────────────
# Service wiring
# ─────────────────────────────────────────────────────────────────────────────
def get_flags():
    return current_app.config["FEATURE_FLAGS"]


def get_directory():
    return current_app.config["DIRECTORY_CLIENT"]


def get_resolver():
    """Resolver for the current flag value (re-evaluated on every call)."""
    cfg = current_app.config["APP_CONFIG"]
    return resolver_for(
        get_flags(),
        lambda: CollaborationMapper(get_directory()),
        cfg.super_admin_emails,
    )


def get_reconciler() -> CollaborationReconciler:
    return CollaborationReconciler(get_directory(), get_flags())


def _safe_redirect_target(target: str | None) -> str:
    """Allow relative paths and explicitly allowed absolute URIs only."""
    cfg = current_app.config["APP_CONFIG"]
    if not target:
        return DEFAULT_REDIRECT
    if target in cfg.allowed_redirect_uris:
        return target
    parsed = urlparse(target)
    if not parsed.scheme and not parsed.netloc and target.startswith("/") and not target.startswith("//"):
        return target
    current_app.logger.warning(f"Rejected redirect target: {target}")
    return DEFAULT_REDIRECT


# ─────────────────────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/login")
def login():
    """Start a login; redirects to the identity provider in federated mode.

    Query params:
        redirect: Where to go after login (relative path or allowed URI)
    """
    target = _safe_redirect_target(request.args.get("redirect"))

    if not get_flags().federated_auth():
        return redirect(target)

    cfg = current_app.config["APP_CONFIG"]
    session[REDIRECT_KEY] = target
    return get_oidc_client().authorize_redirect(cfg.oidc_redirect_uri)


@bp.route("/callback")
def callback():
    """Complete the login: resolve, persist, reconcile and refresh the identity."""
    client = get_oidc_client()
    token = client.authorize_access_token()
    claims = token.get("userinfo") or client.userinfo(token=token)

    resolver = get_resolver()
    identity = resolver.resolve(dict(claims))
    resolver.persist(identity)

    get_reconciler().reconcile(identity)
    identity = resolver.refresh(identity)

    audit.safe_log_event(
        "login",
        identity.sram_id,
        operator=identity.sram_id,
        details={"collaborations": len(identity.collaborations), "user_id": identity.user_id},
    )
    current_app.logger.info(f"[Session] Login sram_id={identity.sram_id} user_id={identity.user_id}")

    return redirect(_safe_redirect_target(session.pop(REDIRECT_KEY, None)))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    """Drop the session identity."""
    target = _safe_redirect_target(request.args.get("redirect"))
    resolver = get_resolver()
    resolver.clear()
    session.pop(REDIRECT_KEY, None)
    audit.safe_log_event("logout", "session")
    return redirect(target)


@bp.route("")
def current():
    """Return the current session identity."""
    resolver = get_resolver()
    identity = resolver.current_identity()
    if identity.user_id is None:
        identity = resolver.refresh(identity)

    payload = identity.to_dict()
    user = db.session.get(User, identity.user_id) if identity.user_id is not None else None
    payload["permission_level"] = user.permission_level.value if user else None
    return jsonify(payload)
