"""
Single-entity lookup helpers.

Every get-by-id in the service layer goes through ``get_or_raise`` so a
missing row always surfaces as ``NotFoundError`` (→ HTTP 404) with the same
message format, and parents are resolved *before* any write.

Usage:
    role = get_or_raise(Role, role_id)
    pair = get_pair_or_raise(RoleTask, "RoleTask", role_id=1, task_id=2)
"""

from sqlalchemy import select

from techledger.core.exceptions import NotFoundError
from techledger.models import db


def get_or_raise(model, pk, label: str | None = None):
    """Fetch ``model`` by primary key or raise NotFoundError."""
    obj = db.session.get(model, pk) if pk is not None else None
    if obj is None:
        raise NotFoundError(label or model.__name__, pk)
    return obj


def find_pair(model, **keys):
    """Return the junction row matching ``keys`` exactly, or None."""
    stmt = select(model).filter_by(**keys)
    return db.session.execute(stmt).scalar_one_or_none()


def get_pair_or_raise(model, label: str, **keys):
    """Fetch a junction row by its composite key or raise NotFoundError."""
    row = find_pair(model, **keys)
    if row is None:
        described = ", ".join(f"{k}={v}" for k, v in keys.items())
        raise NotFoundError(label, f"({described})")
    return row
