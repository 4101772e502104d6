"""
Commit / flush helpers that translate datastore signals into core exceptions.

Replaces the per-service try/except blocks around ``db.session.commit()``:

    IntegrityError (unique violation)      → ConflictError
    IntegrityError (foreign key violation) → ValidationError
    any other SQLAlchemyError              → DatabaseError

The session is always rolled back before the translated error is raised, so
a failed operation never leaves partial state in the session.

Usage::

    db.session.add(row)
    commit_or_raise("RoleTask", field="role_id,task_id", value=(role_id, task_id))

For multi-statement batches, wrap the whole unit in ``atomic()``::

    with atomic():
        for item in items:
            ...
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from techledger.core.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from techledger.models import db

logger = logging.getLogger(__name__)

_UNIQUE_MARKERS = ("unique constraint", "duplicate key", "unique_violation")
_FK_MARKERS = ("foreign key constraint", "foreign_key_violation", "violates foreign key")


def constraint_message(exc: IntegrityError) -> str:
    """Return the driver's own message for an IntegrityError (lower-cased)."""
    return str(getattr(exc, "orig", exc)).lower()


def is_unique_violation(exc: IntegrityError) -> bool:
    pgcode = getattr(getattr(exc, "orig", None), "pgcode", None)
    if pgcode:
        return pgcode == "23505"
    msg = constraint_message(exc)
    return any(marker in msg for marker in _UNIQUE_MARKERS)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    pgcode = getattr(getattr(exc, "orig", None), "pgcode", None)
    if pgcode:
        return pgcode == "23503"
    msg = constraint_message(exc)
    return any(marker in msg for marker in _FK_MARKERS)


def translate_integrity_error(exc: IntegrityError, resource: str, field: str, value=None):
    """Map an IntegrityError to the matching core exception instance."""
    if is_unique_violation(exc):
        logger.warning("Unique violation on %s (%s=%r)", resource, field, value)
        return ConflictError(resource, field, value)
    if is_foreign_key_violation(exc):
        logger.warning("Foreign key violation on %s: %s", resource, exc.orig)
        return ValidationError(
            f"Referenced record does not exist for {resource}",
            details={"foreign_key": str(exc.orig)},
        )
    logger.error("Integrity error on %s: %s", resource, exc.orig)
    return DatabaseError(f"Constraint violation on {resource}", exc)


def commit_or_raise(resource: str, field: str = "id", value=None) -> None:
    """Commit the current session, translating failures into core exceptions."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise translate_integrity_error(exc, resource, field, value) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error on commit (%s)", resource)
        raise DatabaseError(f"Database operation failed: {resource}", exc) from exc


def flush_or_raise(resource: str, field: str = "id", value=None) -> None:
    """Flush pending changes so constraint violations surface at this point.

    Used inside ``atomic()`` batches to attribute a failure to the entry
    that caused it.  On failure the whole session is rolled back.
    """
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise translate_integrity_error(exc, resource, field, value) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error on flush (%s)", resource)
        raise DatabaseError(f"Database operation failed: {resource}", exc) from exc


@contextmanager
def atomic(resource: str = "batch"):
    """Run a block as one all-or-nothing unit of work.

    Commits when the block exits cleanly.  Any exception rolls back every
    change made inside the block and is re-raised (core exceptions as-is,
    other SQLAlchemy errors wrapped in DatabaseError).
    """
    try:
        yield
    except (NotFoundError, ValidationError, ConflictError, DatabaseError):
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        raise translate_integrity_error(exc, resource, "batch") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error in %s", resource)
        raise DatabaseError(f"Database operation failed: {resource}", exc) from exc
    except Exception:
        db.session.rollback()
        raise
    commit_or_raise(resource)
