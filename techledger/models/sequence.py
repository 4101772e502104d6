"""
TechLedger
Action sequence models: explicit, authored workflows.

Example: "Complete Lead Creation" = Login → Navigate → Create → Save.

SequenceAction is stricter than the navigation junctions: besides the
(sequence, action) pair, ``order_number`` is unique within a sequence, so
no two steps can share a position.
"""

from techledger.models import db
from techledger.models._timestamps import iso, utcnow


class ActionSequence(db.Model):
    __tablename__ = "action_sequences"

    id = db.Column(db.Integer, primary_key=True)
    practice_group_id = db.Column(
        db.Integer, db.ForeignKey("practice_groups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    steps = db.relationship(
        "SequenceAction", backref="sequence", cascade="all, delete-orphan",
        order_by="SequenceAction.order_number",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "practice_group_id": self.practice_group_id,
            "name": self.name,
            "description": self.description,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<ActionSequence {self.id}: {self.name}>"


class SequenceAction(db.Model):
    """Junction: one Action pinned at one position of one ActionSequence."""

    __tablename__ = "sequence_actions"

    id = db.Column(db.Integer, primary_key=True)
    sequence_id = db.Column(
        db.Integer, db.ForeignKey("action_sequences.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    action_id = db.Column(
        db.Integer, db.ForeignKey("actions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    order_number = db.Column(db.Integer, nullable=False, comment="1..N within the sequence")
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("sequence_id", "action_id", name="uq_sequence_actions_action"),
        db.UniqueConstraint("sequence_id", "order_number", name="uq_sequence_actions_order"),
    )

    def to_dict(self, include_action=False):
        result = {
            "id": self.id,
            "sequence_id": self.sequence_id,
            "action_id": self.action_id,
            "order_number": self.order_number,
            "notes": self.notes,
        }
        if include_action:
            result["action"] = self.action.to_dict() if self.action else None
        return result
