"""
TechLedger
Blueprint registry and shared request helpers.

Blueprints stay thin: parse the request, call one service function, shape
the response.  Service exceptions are turned into HTTP errors once, here,
by ``register_error_handlers``.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from techledger.core.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from techledger.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def list_options() -> dict:
    """Read paging/ordering query params for a list operation.

    Query params:
        limit           — page size (clamped by the service)
        offset          — starting position
        orderBy         — sortable column name
        orderDirection  — ASC | DESC
    """
    return {
        "limit": request.args.get("limit"),
        "offset": request.args.get("offset"),
        "order_by": request.args.get("orderBy") or request.args.get("order_by"),
        "order_direction": (
            request.args.get("orderDirection") or request.args.get("order_direction")
        ),
    }


def json_body():
    """Parsed JSON body, or None when absent/unparseable."""
    return request.get_json(silent=True)


def register_error_handlers(app):
    """Map service exceptions and HTTP errors to the standard error body."""

    @app.errorhandler(NotFoundError)
    def _handle_not_found(e):
        return api_error(E.NOT_FOUND, str(e))

    @app.errorhandler(ValidationError)
    def _handle_validation(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(ConflictError)
    def _handle_conflict(e):
        return api_error(
            E.CONFLICT_DUPLICATE, str(e), details={"field": e.field},
        )

    @app.errorhandler(DatabaseError)
    def _handle_database(e):
        logger.error("Database error: %s", e, exc_info=e.original or e)
        return api_error(E.DATABASE, "A database error occurred")

    @app.errorhandler(404)
    def _not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def _too_large(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(415)
    def _unsupported(e):
        return api_error(E.UNSUPPORTED_MEDIA_TYPE, e.description or "Unsupported media type")

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(
            E.RATE_LIMITED, "Too many requests", details={"retry_after": e.description},
        )

    @app.errorhandler(Exception)
    def _unexpected(e):
        if isinstance(e, HTTPException):
            return api_error(E.INTERNAL, e.description or e.name, status=e.code)
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=e)
        return api_error(E.INTERNAL, "Internal server error")
