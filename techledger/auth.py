"""
TechLedger
Request authentication & subject resolution.

Provides:
    - Optional API key gate via X-API-Key header (or ?api_key= query param)
    - The authenticated subject id, read from the X-User-Id header set by the
      upstream identity provider / gateway, stored on ``g.subject_id``
    - Content-Type enforcement for state-changing requests

The subject id is opaque: it is only ever stored as ``owner_id`` on Systems,
Roles and Tasks and as ``created_by`` on Links.  Sessions, passwords and
tokens are the identity provider's concern.

Configuration:
    API_KEYS          — comma-separated list of valid API keys
    API_AUTH_ENABLED  — "true" to require a key on /api/v1/* (off in dev/test)
"""

import logging
import os

from flask import current_app, g, request

from techledger.utils.errors import E, api_error

logger = logging.getLogger(__name__)

SUBJECT_HEADER = "X-User-Id"
_FALSY = ("false", "0", "no", "off", "")


def _parse_api_keys(raw: str) -> set[str]:
    return {entry.strip() for entry in raw.split(",") if entry.strip()}


def _is_auth_enabled(app) -> bool:
    """Env var wins over app config."""
    env_val = os.getenv("API_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in _FALSY
    return str(app.config.get("API_AUTH_ENABLED", "false")).lower() not in _FALSY


def _get_api_key_from_request() -> str | None:
    key = request.headers.get("X-API-Key", "").strip()
    if key:
        return key
    return request.args.get("api_key", "").strip() or None


def _check_content_type():
    """
    POST/PUT/PATCH/DELETE with a body must be JSON.  HTML forms cannot send
    application/json, which doubles as a lightweight CSRF guard.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length:
            return api_error(
                E.UNSUPPORTED_MEDIA_TYPE,
                "Content-Type must be application/json for state-changing requests",
            )
    return None


def current_subject(payload: dict | None = None, field: str = "owner_id") -> str | None:
    """Return the caller's subject id.

    Prefers the identity header; falls back to ``payload[field]`` so
    trusted internal callers can act on behalf of a subject.
    """
    subject = getattr(g, "subject_id", None)
    if subject:
        return subject
    if payload and isinstance(payload.get(field), str) and payload[field].strip():
        return payload[field].strip()
    return None


def init_auth(app):
    """
    Install authentication middleware on the Flask app.

    - Resolves g.subject_id on every API request
    - Skips health checks and CORS pre-flight
    """
    enabled = _is_auth_enabled(app)

    @app.before_request
    def _before_request_auth():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path == "/api/v1/health" or request.path.startswith("/api/v1/health/"):
            return None
        if request.method == "OPTIONS":
            return None

        error = _check_content_type()
        if error:
            return error

        g.subject_id = request.headers.get(SUBJECT_HEADER, "").strip() or None

        if not enabled:
            g.api_key = "dev-mode"
            return None

        api_key = _get_api_key_from_request()
        if not api_key:
            return api_error(E.UNAUTHORIZED, "Authentication required. Provide X-API-Key header.")

        api_keys = _parse_api_keys(current_app.config.get("API_KEYS", "") or os.getenv("API_KEYS", ""))
        if not api_keys:
            logger.error("API_KEYS is not configured but API_AUTH_ENABLED=true")
            return api_error(E.INTERNAL, "Server authentication not configured")

        if api_key not in api_keys:
            logger.warning("Invalid API key attempt: %s...", api_key[:8])
            return api_error(E.UNAUTHORIZED, "Invalid API key")

        g.api_key = api_key
        return None

    logger.info("Auth middleware installed (enabled=%s)", enabled)
