"""
TechLedger
Action models.

An Action is the atomic documentation unit.  It hangs off exactly one
hierarchy parent (a System *or* a PracticeGroup) but is otherwise
parent-agnostic: Tasks and ActionSequences reach it through their own
junction tables without copying its content.
"""

from techledger.models import db
from techledger.models._timestamps import iso, utcnow


class Action(db.Model):
    __tablename__ = "actions"

    id = db.Column(db.Integer, primary_key=True)
    system_id = db.Column(
        db.Integer, db.ForeignKey("systems.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    practice_group_id = db.Column(
        db.Integer, db.ForeignKey("practice_groups.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    steps = db.Column(db.JSON, default=list, comment="opaque ordered step payload")
    screenshots = db.Column(db.JSON, default=list, comment="opaque screenshot refs")
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # ── Junction relationships (deleted with the action) ─────────────────
    task_memberships = db.relationship(
        "TaskAction", backref="action", cascade="all, delete-orphan",
    )
    sequence_memberships = db.relationship(
        "SequenceAction", backref="action", cascade="all, delete-orphan",
    )
    link_associations = db.relationship(
        "ActionLink", backref="action", cascade="all, delete-orphan",
    )
    screenshot_refs = db.relationship(
        "ScreenshotRef", backref="action", cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint(
            "(system_id IS NOT NULL AND practice_group_id IS NULL) OR "
            "(system_id IS NULL AND practice_group_id IS NOT NULL)",
            name="ck_action_single_parent",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "system_id": self.system_id,
            "practice_group_id": self.practice_group_id,
            "title": self.title,
            "description": self.description,
            "steps": self.steps or [],
            "screenshots": self.screenshots or [],
            "display_order": self.display_order,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Action {self.id}: {self.title}>"


class ScreenshotRef(db.Model):
    """
    Reference row for a screenshot stored by the external ingestion service.

    Only the pointer is kept here; bytes, OCR and vision output live
    elsewhere.  Rows disappear with their Action.
    """

    __tablename__ = "screenshots"

    id = db.Column(db.Integer, primary_key=True)
    action_id = db.Column(
        db.Integer, db.ForeignKey("actions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    file_path = db.Column(db.String(500), nullable=False)
    original_filename = db.Column(db.String(255), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "action_id": self.action_id,
            "file_path": self.file_path,
            "original_filename": self.original_filename,
            "uploaded_at": iso(self.uploaded_at),
        }
