"""
TechLedger
Navigation graph models — Role ↔ Task ↔ Action.

Models:
    - Role: a job function, owned by one subject
    - Task: a goal-oriented group of Actions, owned by one subject
    - RoleTask: N:M junction Role ↔ Task, ordered per role
    - TaskAction: N:M junction Task ↔ Action, ordered per task, with notes

Ordering lives on the junction row, never on the child, because the same
Task (or Action) sits at different positions in different parents at once.
"""

from techledger.models import db
from techledger.models._timestamps import iso, utcnow


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    task_links = db.relationship(
        "RoleTask", backref="role", cascade="all, delete-orphan",
    )
    link_associations = db.relationship(
        "RoleLink", backref="role", cascade="all, delete-orphan",
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
        return f"<Role {self.id}: {self.name}>"


class Task(db.Model):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    role_links = db.relationship(
        "RoleTask", backref="task", cascade="all, delete-orphan",
    )
    action_links = db.relationship(
        "TaskAction", backref="task", cascade="all, delete-orphan",
    )
    link_associations = db.relationship(
        "TaskLink", backref="task", cascade="all, delete-orphan",
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
        return f"<Task {self.id}: {self.name}>"


class RoleTask(db.Model):
    """N:M junction: which Tasks belong to which Role, in what order."""

    __tablename__ = "role_tasks"

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(
        db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        db.UniqueConstraint("role_id", "task_id", name="uq_role_tasks_pair"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "role_id": self.role_id,
            "task_id": self.task_id,
            "display_order": self.display_order,
            "created_at": iso(self.created_at),
        }


class TaskAction(db.Model):
    """
    N:M junction: which Actions a Task walks through, in what order.

    ``notes`` carries task-specific context for an otherwise generic Action
    (the same "Login to Salesforce" step annotated differently per Task).
    """

    __tablename__ = "task_actions"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    action_id = db.Column(
        db.Integer, db.ForeignKey("actions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    display_order = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        db.UniqueConstraint("task_id", "action_id", name="uq_task_actions_pair"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "action_id": self.action_id,
            "display_order": self.display_order,
            "notes": self.notes,
            "created_at": iso(self.created_at),
        }
