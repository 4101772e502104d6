"""
Link Service — canonical external references and their four attachments.

One ``links`` row per URL, attached to Systems, Actions, Roles and Tasks
through ``system_links`` / ``action_links`` / ``role_links`` / ``task_links``.

Attachment semantics differ from the navigation graph on purpose:
    - ``attach_link`` is an upsert.  Re-attaching an existing (parent, link)
      pair overwrites its display_order and context_notes instead of failing.
    - ``detach_link`` raises NotFoundError when there is nothing to detach.

Browsing (``links_for``) shows active links only.  Inactive, broken and
outdated links stay reachable through ``get_link`` and the maintenance
queries.  Status changes are manual; nothing here fetches URLs.

Maintenance queries:
    usage_stats                 per-link attachment counts per junction
    orphaned_links              links with no attachment at all
    links_needing_verification  active links not checked within the window
"""

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import func, literal, select

from techledger.core.exceptions import ValidationError
from techledger.models import db
from techledger.models._timestamps import iso, utcnow
from techledger.models.action import Action
from techledger.models.hierarchy import System
from techledger.models.links import (
    AUTH_REQUIREMENTS,
    LINK_STATUSES,
    LINK_TYPES,
    ActionLink,
    Link,
    RoleLink,
    SystemLink,
    TaskLink,
)
from techledger.models.navigation import Role, Task
from techledger.services.helpers.listing import clamp_paging, paginate, resolve_ordering
from techledger.services.helpers.lookups import find_pair, get_or_raise, get_pair_or_raise
from techledger.services.helpers.transactions import atomic, commit_or_raise, flush_or_raise
from techledger.services.helpers.validators import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NOTES_LENGTH,
    FieldChecker,
    check_batch,
)

logger = logging.getLogger(__name__)

STALE_AFTER_DAYS = 90

# parent kind → (parent model, junction model)
PARENT_KINDS = {
    "system": (System, SystemLink),
    "action": (Action, ActionLink),
    "role": (Role, RoleLink),
    "task": (Task, TaskLink),
}

SORTABLE = {
    "created_at": Link.created_at,
    "updated_at": Link.updated_at,
    "title": Link.title,
    "status": Link.status,
    "link_type": Link.link_type,
    "last_verified_at": Link.last_verified_at,
    "id": Link.id,
}


def _junction_for(parent_kind: str):
    try:
        return PARENT_KINDS[parent_kind]
    except KeyError:
        raise ValidationError(
            f"Unknown link parent '{parent_kind}'",
            details={"parent_kind": f"Must be one of: {', '.join(PARENT_KINDS)}"},
        ) from None


def _check_link(data: dict | None, *, partial: bool) -> dict:
    checker = FieldChecker(data, partial=partial)
    checker.url("url", required=True)
    checker.text("title", required=True)
    checker.text("description", max_length=MAX_DESCRIPTION_LENGTH)
    checker.choice("link_type", LINK_TYPES)
    checker.choice("auth_required", AUTH_REQUIREMENTS)
    checker.choice("status", LINK_STATUSES)
    checker.text("access_notes", max_length=MAX_NOTES_LENGTH)
    checker.text("notes", max_length=MAX_NOTES_LENGTH)
    checker.url("thumbnail_url")
    checker.boolean("open_in_new_tab")
    if partial:
        checker.forbid("created_by", reason="Creator cannot be changed")
        checker.forbid("last_verified_at", reason="Use the verify operation instead")
    return checker.validated("Invalid update data" if partial else "Invalid link data")


def _attachment_row(parent_column: str):
    def mapper(row) -> dict:
        association, link = row
        return {
            "association_id": association.id,
            parent_column: association.parent_id,
            "link_id": association.link_id,
            "display_order": association.display_order,
            "context_notes": association.context_notes,
            "attached_at": iso(association.created_at),
            "link": link.to_dict(),
        }
    return mapper


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _stale_after_days() -> int:
    return int(current_app.config.get("LINK_STALE_AFTER_DAYS", STALE_AFTER_DAYS))


# ═════════════════════════════════════════════════════════════════════════════
# Links
# ═════════════════════════════════════════════════════════════════════════════


def create_link(data: dict, created_by: str | None = None) -> dict:
    """Create a canonical Link.

    Args:
        data: {url (http/https, required), title (required), description?,
               link_type?, auth_required?, access_notes?, status?, notes?,
               thumbnail_url?, open_in_new_tab?}
        created_by: Opaque subject id of the caller.
    """
    cleaned = _check_link(data, partial=False)
    link = Link(created_by=created_by, **cleaned)
    db.session.add(link)
    commit_or_raise("Link")
    logger.info("Link created", extra={"link_id": link.id, "link_type": link.link_type})
    return link.to_dict()


def get_link(link_id: int) -> dict:
    """Any status; direct lookup is how non-active links stay reachable."""
    return get_or_raise(Link, link_id).to_dict()


def list_links(
    status: str | None = None,
    link_type: str | None = None,
    created_by: str | None = None,
    *,
    limit=None,
    offset=None,
    order_by=None,
    order_direction=None,
) -> dict:
    """Page through all links, optionally filtered.  ``total`` honours filters."""
    errors = {}
    if status is not None and status not in LINK_STATUSES:
        errors["status"] = f"Must be one of: {', '.join(LINK_STATUSES)}"
    if link_type is not None and link_type not in LINK_TYPES:
        errors["link_type"] = f"Must be one of: {', '.join(LINK_TYPES)}"
    if errors:
        raise ValidationError("Invalid link filters", details=errors)

    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(SORTABLE, order_by, order_direction, "created_at", "DESC")
    stmt = select(Link)
    if status is not None:
        stmt = stmt.where(Link.status == status)
    if link_type is not None:
        stmt = stmt.where(Link.link_type == link_type)
    if created_by is not None:
        stmt = stmt.where(Link.created_by == created_by)
    return paginate(stmt, limit=limit, offset=offset, order_clauses=(order, Link.id.desc()))


def update_link(link_id: int, data: dict) -> dict:
    """Partial update.  Any status in the closed set may be set by the caller."""
    link = get_or_raise(Link, link_id)
    cleaned = _check_link(data, partial=True)
    previous_status = link.status
    for key, value in cleaned.items():
        setattr(link, key, value)
    commit_or_raise("Link")
    if link.status != previous_status:
        logger.info(
            "Link status changed",
            extra={"link_id": link_id, "from": previous_status, "to": link.status},
        )
    logger.info("Link updated", extra={"link_id": link_id, "fields": sorted(cleaned)})
    return link.to_dict()


def delete_link(link_id: int) -> None:
    """Delete a Link and every attachment in all four junctions."""
    link = get_or_raise(Link, link_id)
    db.session.delete(link)
    commit_or_raise("Link")
    logger.info("Link deleted", extra={"link_id": link_id})


def verify_link(link_id: int) -> dict:
    """Stamp ``last_verified_at``; status is left as it is."""
    link = get_or_raise(Link, link_id)
    link.last_verified_at = utcnow()
    commit_or_raise("Link")
    logger.info("Link verified", extra={"link_id": link_id})
    return link.to_dict()


# ═════════════════════════════════════════════════════════════════════════════
# Attachments
# ═════════════════════════════════════════════════════════════════════════════


def _check_attachment(checker: FieldChecker) -> None:
    checker.ref_id("link_id", required=True)
    checker.order("display_order")
    checker.text("context_notes", max_length=MAX_NOTES_LENGTH)


def _upsert(junction, parent_id: int, entry: dict):
    """Insert or overwrite one attachment; returns (row, created)."""
    keys = {junction.parent_column: parent_id, "link_id": entry["link_id"]}
    association = find_pair(junction, **keys)
    created = association is None
    if created:
        association = junction(**keys)
        db.session.add(association)
    association.display_order = entry.get("display_order", 0)
    association.context_notes = entry.get("context_notes")
    return association, created


def attach_link(parent_kind: str, parent_id: int, data: dict) -> tuple[dict, bool]:
    """Attach a Link to a parent, or update the existing attachment.

    Args:
        data: {link_id (required), display_order?, context_notes?}

    Returns:
        (attachment dict, created) where ``created`` is False for an update.

    Raises:
        NotFoundError: parent or link does not exist.
    """
    parent_model, junction = _junction_for(parent_kind)
    checker = FieldChecker(data)
    _check_attachment(checker)
    entry = checker.validated("Invalid attachment data")

    get_or_raise(parent_model, parent_id)
    get_or_raise(Link, entry["link_id"])

    association, created = _upsert(junction, parent_id, entry)
    commit_or_raise(
        junction.__name__, field=f"{junction.parent_column},link_id",
        value=(parent_id, entry["link_id"]),
    )
    logger.info(
        "Link attached" if created else "Link attachment updated",
        extra={"parent_kind": parent_kind, "parent_id": parent_id, "link_id": entry["link_id"]},
    )
    return association.to_dict(), created


def detach_link(parent_kind: str, parent_id: int, link_id: int) -> None:
    parent_model, junction = _junction_for(parent_kind)
    get_or_raise(parent_model, parent_id)
    association = get_pair_or_raise(
        junction, junction.__name__, **{junction.parent_column: parent_id, "link_id": link_id},
    )
    db.session.delete(association)
    commit_or_raise(junction.__name__)
    logger.info(
        "Link detached",
        extra={"parent_kind": parent_kind, "parent_id": parent_id, "link_id": link_id},
    )


def links_for(parent_kind: str, parent_id: int) -> list[dict]:
    """Active links of one parent: display_order ASC, then newest link first."""
    parent_model, junction = _junction_for(parent_kind)
    get_or_raise(parent_model, parent_id)
    rows = db.session.execute(
        select(junction, Link)
        .join(Link, Link.id == junction.link_id)
        .where(getattr(junction, junction.parent_column) == parent_id)
        .where(Link.status == "active")
        .order_by(junction.display_order.asc(), Link.created_at.desc(), junction.id.asc())
    ).all()
    mapper = _attachment_row(junction.parent_column)
    return [mapper(row) for row in rows]


def bulk_attach(parent_kind: str, parent_id: int, items) -> list[dict]:
    """Apply several attach upserts in one transaction, all or nothing.

    Args:
        items: [{link_id, display_order?, context_notes?}, ...]
    """
    parent_model, junction = _junction_for(parent_kind)
    entries = check_batch(items, _check_attachment)
    touched = []
    with atomic(junction.__name__):
        get_or_raise(parent_model, parent_id)
        for entry in entries:
            get_or_raise(Link, entry["link_id"])
            association, _created = _upsert(junction, parent_id, entry)
            flush_or_raise(
                junction.__name__, field=f"{junction.parent_column},link_id",
                value=(parent_id, entry["link_id"]),
            )
            touched.append(association)
    logger.info(
        "Links bulk-attached",
        extra={"parent_kind": parent_kind, "parent_id": parent_id, "count": len(touched)},
    )
    return [a.to_dict() for a in touched]


def reorder_all(parent_kind: str, parent_id: int, items) -> list[dict]:
    """Set display_order for several attachments of one parent, all or nothing.

    Args:
        items: [{link_id, display_order}, ...]

    Raises:
        NotFoundError: any entry names a link that is not attached; nothing
                       is changed in that case.
    """
    parent_model, junction = _junction_for(parent_kind)

    def configure(checker: FieldChecker) -> None:
        checker.ref_id("link_id", required=True)
        checker.order("display_order", required=True)

    entries = check_batch(items, configure)
    touched = []
    with atomic(junction.__name__):
        get_or_raise(parent_model, parent_id)
        for entry in entries:
            association = get_pair_or_raise(
                junction, junction.__name__,
                **{junction.parent_column: parent_id, "link_id": entry["link_id"]},
            )
            association.display_order = entry["display_order"]
            flush_or_raise(junction.__name__)
            touched.append(association)
    logger.info(
        "Links reordered",
        extra={"parent_kind": parent_kind, "parent_id": parent_id, "count": len(touched)},
    )
    return [a.to_dict() for a in touched]


# ═════════════════════════════════════════════════════════════════════════════
# Maintenance queries
# ═════════════════════════════════════════════════════════════════════════════


def _usage_statement():
    """Links outer-joined with per-junction attachment counts."""
    counts = {}
    for kind, (_model, junction) in PARENT_KINDS.items():
        counts[kind] = (
            select(junction.link_id.label("link_id"), func.count(junction.id).label("n"))
            .group_by(junction.link_id)
            .subquery(f"{kind}_usage")
        )

    columns = {kind: func.coalesce(sub.c.n, literal(0)) for kind, sub in counts.items()}
    total = columns["system"] + columns["action"] + columns["role"] + columns["task"]

    stmt = select(
        Link,
        columns["system"].label("system_count"),
        columns["action"].label("action_count"),
        columns["role"].label("role_count"),
        columns["task"].label("task_count"),
        total.label("total_usage"),
    )
    for sub in counts.values():
        stmt = stmt.outerjoin(sub, sub.c.link_id == Link.id)
    return stmt, total


def _usage_row(row) -> dict:
    link = row[0]
    return {
        "link_id": link.id,
        "title": link.title,
        "url": link.url,
        "status": link.status,
        "system_count": row.system_count,
        "action_count": row.action_count,
        "role_count": row.role_count,
        "task_count": row.task_count,
        "total_usage": row.total_usage,
    }


def usage_stats(link_id: int | None = None):
    """Attachment counts per junction.

    Returns one dict for ``link_id``, otherwise a list for every link,
    most used first.
    """
    stmt, total = _usage_statement()
    if link_id is not None:
        get_or_raise(Link, link_id)
        row = db.session.execute(stmt.where(Link.id == link_id)).one()
        return _usage_row(row)
    rows = db.session.execute(stmt.order_by(total.desc(), Link.id.asc())).all()
    return [_usage_row(row) for row in rows]


def orphaned_links() -> list[dict]:
    """Links attached to nothing, newest first.  Any status qualifies."""
    stmt, total = _usage_statement()
    rows = db.session.execute(
        stmt.where(total == 0).order_by(Link.created_at.desc(), Link.id.desc())
    ).all()
    return [row[0].to_dict() for row in rows]


def links_needing_verification(now: datetime | None = None) -> list[dict]:
    """Active links whose last check is older than the freshness window.

    The last check is ``last_verified_at``, or ``created_at`` for a link
    never verified.  Oldest check first; each row has ``days_since_check``.
    """
    now = _as_utc(now or utcnow())
    cutoff = now - timedelta(days=_stale_after_days())
    last_check = func.coalesce(Link.last_verified_at, Link.created_at)

    links = db.session.execute(
        select(Link)
        .where(Link.status == "active")
        .where(last_check < cutoff)
        .order_by(last_check.asc(), Link.id.asc())
    ).scalars().all()

    result = []
    for link in links:
        checked = _as_utc(link.last_verified_at or link.created_at)
        item = link.to_dict()
        item["days_since_check"] = (now - checked).days
        result.append(item)
    return result
