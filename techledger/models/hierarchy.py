"""
TechLedger
Organisational hierarchy models.

Hierarchy:
    System → Department → PracticeGroup → Action

Every node has exactly one parent (System is the root) and a sibling
``display_order`` that is caller-managed: values may repeat and are never
renumbered automatically.  Deleting a node removes every descendant,
including Actions, ActionSequences and all junction rows that reference
them (ORM cascade + ``ON DELETE CASCADE``).
"""

from techledger.models import db
from techledger.models._timestamps import iso, utcnow


class System(db.Model):
    """
    Top-level software system (e.g. Salesforce, QuickBooks).

    ``owner_id`` is the opaque subject id issued by the identity provider.
    """

    __tablename__ = "systems"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(255), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # ── Relationships ────────────────────────────────────────────────────
    departments = db.relationship(
        "Department", backref="system", cascade="all, delete-orphan",
    )
    actions = db.relationship(
        "Action", backref="system", cascade="all, delete-orphan",
        foreign_keys="Action.system_id",
    )
    link_associations = db.relationship(
        "SystemLink", backref="system", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "display_order": self.display_order,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<System {self.id}: {self.name}>"


class Department(db.Model):
    """Organisational sub-unit of a System (e.g. Sales, Finance)."""

    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    system_id = db.Column(
        db.Integer, db.ForeignKey("systems.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    practice_groups = db.relationship(
        "PracticeGroup", backref="department", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "system_id": self.system_id,
            "name": self.name,
            "description": self.description,
            "display_order": self.display_order,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Department {self.id}: {self.name}>"


class PracticeGroup(db.Model):
    """Specialised group within a Department (e.g. Accounts Payable)."""

    __tablename__ = "practice_groups"

    id = db.Column(db.Integer, primary_key=True)
    department_id = db.Column(
        db.Integer, db.ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    actions = db.relationship(
        "Action", backref="practice_group", cascade="all, delete-orphan",
        foreign_keys="Action.practice_group_id",
    )
    sequences = db.relationship(
        "ActionSequence", backref="practice_group", cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "department_id": self.department_id,
            "name": self.name,
            "description": self.description,
            "display_order": self.display_order,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<PracticeGroup {self.id}: {self.name}>"
