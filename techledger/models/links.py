"""
TechLedger
Link association models.

One canonical ``links`` row per external reference, attached to Systems,
Actions, Roles and Tasks through four parallel junction tables.  Four real
tables (instead of one discriminator column) keep every association under a
native foreign key with ``ON DELETE CASCADE``.

Link.status state machine (manual transitions only):
    active → inactive | broken | outdated
"""

from sqlalchemy.orm import declared_attr

from techledger.models import db
from techledger.models._timestamps import iso, utcnow


# ── Constants ────────────────────────────────────────────────────────────────

LINK_TYPES = (
    "documentation",
    "video",
    "support_article",
    "tool",
    "internal_wiki",
    "vendor_site",
    "training",
    "other",
)
AUTH_REQUIREMENTS = ("none", "login", "vpn", "sso", "credentials")
LINK_STATUSES = ("active", "inactive", "broken", "outdated")


def _in_list(column, values):
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Link(db.Model):
    __tablename__ = "links"

    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.String(2048), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    link_type = db.Column(db.String(50), nullable=False, default="documentation", index=True)
    auth_required = db.Column(db.String(50), nullable=False, default="none")
    access_notes = db.Column(db.Text, nullable=True, comment="e.g. use your company email")
    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    last_verified_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)
    thumbnail_url = db.Column(db.String(2048), nullable=True)
    open_in_new_tab = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.String(255), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # ── Relationships (junction rows go with the link) ───────────────────
    system_associations = db.relationship(
        "SystemLink", backref="link", cascade="all, delete-orphan",
    )
    action_associations = db.relationship(
        "ActionLink", backref="link", cascade="all, delete-orphan",
    )
    role_associations = db.relationship(
        "RoleLink", backref="link", cascade="all, delete-orphan",
    )
    task_associations = db.relationship(
        "TaskLink", backref="link", cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint(_in_list("link_type", LINK_TYPES), name="ck_links_link_type"),
        db.CheckConstraint(_in_list("auth_required", AUTH_REQUIREMENTS), name="ck_links_auth_required"),
        db.CheckConstraint(_in_list("status", LINK_STATUSES), name="ck_links_status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "link_type": self.link_type,
            "auth_required": self.auth_required,
            "access_notes": self.access_notes,
            "status": self.status,
            "last_verified_at": iso(self.last_verified_at),
            "notes": self.notes,
            "thumbnail_url": self.thumbnail_url,
            "open_in_new_tab": self.open_in_new_tab,
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Link {self.id}: {self.url}>"


# ── Junction tables ──────────────────────────────────────────────────────────


class LinkAssociation(db.Model):
    """Abstract base for the four ``<parent>_links`` junction tables."""

    __abstract__ = True

    #: Name of the parent FK column, set by each subclass.
    parent_column = None

    id = db.Column(db.Integer, primary_key=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    context_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    @declared_attr
    def link_id(cls):
        return db.Column(
            db.Integer, db.ForeignKey("links.id", ondelete="CASCADE"),
            nullable=False, index=True,
        )

    @property
    def parent_id(self):
        return getattr(self, self.parent_column)

    def to_dict(self):
        return {
            "id": self.id,
            self.parent_column: self.parent_id,
            "link_id": self.link_id,
            "display_order": self.display_order,
            "context_notes": self.context_notes,
            "created_at": iso(self.created_at),
        }


class SystemLink(LinkAssociation):
    __tablename__ = "system_links"
    parent_column = "system_id"

    system_id = db.Column(
        db.Integer, db.ForeignKey("systems.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("system_id", "link_id", name="uq_system_links_pair"),
        db.Index("ix_system_links_order", "system_id", "display_order"),
    )


class ActionLink(LinkAssociation):
    __tablename__ = "action_links"
    parent_column = "action_id"

    action_id = db.Column(
        db.Integer, db.ForeignKey("actions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("action_id", "link_id", name="uq_action_links_pair"),
        db.Index("ix_action_links_order", "action_id", "display_order"),
    )


class RoleLink(LinkAssociation):
    __tablename__ = "role_links"
    parent_column = "role_id"

    role_id = db.Column(
        db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("role_id", "link_id", name="uq_role_links_pair"),
        db.Index("ix_role_links_order", "role_id", "display_order"),
    )


class TaskLink(LinkAssociation):
    __tablename__ = "task_links"
    parent_column = "task_id"

    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("task_id", "link_id", name="uq_task_links_pair"),
        db.Index("ix_task_links_order", "task_id", "display_order"),
    )
