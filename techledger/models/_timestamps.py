"""Shared column helpers for TechLedger models."""

from datetime import datetime, timezone


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """Serialise a datetime column for ``to_dict`` (None-safe)."""
    return value.isoformat() if value else None
