"""
Navigation Service — Role ↔ Task ↔ Action graph.

Lets a reader reach an Action through "my role → what I need to do → which
steps" without duplicating Action content.

Junction rules (RoleTask, TaskAction):
    - Insert-only.  Linking an existing pair raises ConflictError, taken from
      the database's unique-constraint signal rather than a prior lookup.
    - Both parents are looked up first; a missing parent raises NotFoundError,
      so callers can tell "bad reference" from "already linked".
    - ``display_order`` lives on the junction row and is caller-managed.
      Siblings are never renumbered; ties are allowed and broken by the
      junction id.
    - Bulk variants apply a whole batch in one transaction.  Any failure
      rolls back every row of the batch.
"""

import logging

from sqlalchemy import select

from techledger.core.exceptions import ValidationError
from techledger.models import db
from techledger.models._timestamps import iso
from techledger.models.action import Action
from techledger.models.navigation import Role, RoleTask, Task, TaskAction
from techledger.services.helpers.listing import clamp_paging, paginate, resolve_ordering
from techledger.services.helpers.lookups import get_or_raise, get_pair_or_raise
from techledger.services.helpers.transactions import atomic, commit_or_raise, flush_or_raise
from techledger.services.helpers.validators import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NOTES_LENGTH,
    FieldChecker,
    check_batch,
    is_non_negative_int,
    is_positive_int,
)

logger = logging.getLogger(__name__)


def _entity_sortable(model) -> dict:
    return {
        "display_order": model.display_order,
        "name": model.name,
        "created_at": model.created_at,
        "updated_at": model.updated_at,
        "id": model.id,
    }


def _check_entity(data: dict | None, *, partial: bool) -> dict:
    checker = FieldChecker(data, partial=partial)
    checker.text("name", required=True)
    checker.text("description", max_length=MAX_DESCRIPTION_LENGTH)
    checker.order("display_order")
    if partial:
        checker.forbid("owner_id", reason="Owner cannot be changed")
    return checker.validated("Invalid update data" if partial else "Invalid data")


def _require_owner(owner_id) -> str:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise ValidationError(
            "Owner is required", details={"owner_id": "An authenticated subject id is required"},
        )
    return owner_id.strip()


def _check_ref(name: str, value) -> int:
    if not is_positive_int(value):
        raise ValidationError(
            "Invalid reference", details={name: f"{name} must be a positive integer"},
        )
    return value


def _check_order_value(display_order) -> int:
    if not is_non_negative_int(display_order):
        raise ValidationError(
            "Invalid order",
            details={"display_order": "display_order must be a non-negative integer"},
        )
    return display_order


def _batch_entry(child_field: str, *, with_notes: bool):
    def configure(checker: FieldChecker) -> None:
        checker.ref_id(child_field, required=True)
        checker.order("display_order")
        if with_notes:
            checker.text("notes", max_length=MAX_NOTES_LENGTH)
    return configure


# ═════════════════════════════════════════════════════════════════════════════
# Roles
# ═════════════════════════════════════════════════════════════════════════════


def create_role(data: dict, owner_id: str | None) -> dict:
    """Create a Role owned by ``owner_id`` (the authenticated subject)."""
    cleaned = _check_entity(data, partial=False)
    role = Role(owner_id=_require_owner(owner_id), **cleaned)
    db.session.add(role)
    commit_or_raise("Role")
    logger.info("Role created", extra={"role_id": role.id, "owner_id": role.owner_id})
    return role.to_dict()


def get_role(role_id: int) -> dict:
    return get_or_raise(Role, role_id).to_dict()


def list_roles(owner_id: str | None = None, *, limit=None, offset=None, order_by=None, order_direction=None) -> dict:
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(_entity_sortable(Role), order_by, order_direction, "display_order")
    stmt = select(Role)
    if owner_id is not None:
        stmt = stmt.where(Role.owner_id == owner_id)
    return paginate(stmt, limit=limit, offset=offset, order_clauses=(order, Role.id.asc()))


def update_role(role_id: int, data: dict) -> dict:
    role = get_or_raise(Role, role_id)
    cleaned = _check_entity(data, partial=True)
    for key, value in cleaned.items():
        setattr(role, key, value)
    commit_or_raise("Role")
    logger.info("Role updated", extra={"role_id": role_id})
    return role.to_dict()


def delete_role(role_id: int) -> None:
    """Delete a Role with its RoleTask and RoleLink rows.  Tasks survive."""
    role = get_or_raise(Role, role_id)
    db.session.delete(role)
    commit_or_raise("Role")
    logger.info("Role deleted", extra={"role_id": role_id})


# ═════════════════════════════════════════════════════════════════════════════
# Tasks
# ═════════════════════════════════════════════════════════════════════════════


def create_task(data: dict, owner_id: str | None) -> dict:
    cleaned = _check_entity(data, partial=False)
    task = Task(owner_id=_require_owner(owner_id), **cleaned)
    db.session.add(task)
    commit_or_raise("Task")
    logger.info("Task created", extra={"task_id": task.id, "owner_id": task.owner_id})
    return task.to_dict()


def get_task(task_id: int) -> dict:
    return get_or_raise(Task, task_id).to_dict()


def list_tasks(owner_id: str | None = None, *, limit=None, offset=None, order_by=None, order_direction=None) -> dict:
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(_entity_sortable(Task), order_by, order_direction, "display_order")
    stmt = select(Task)
    if owner_id is not None:
        stmt = stmt.where(Task.owner_id == owner_id)
    return paginate(stmt, limit=limit, offset=offset, order_clauses=(order, Task.id.asc()))


def update_task(task_id: int, data: dict) -> dict:
    task = get_or_raise(Task, task_id)
    cleaned = _check_entity(data, partial=True)
    for key, value in cleaned.items():
        setattr(task, key, value)
    commit_or_raise("Task")
    logger.info("Task updated", extra={"task_id": task_id})
    return task.to_dict()


def delete_task(task_id: int) -> None:
    """Delete a Task with every RoleTask, TaskAction and TaskLink row."""
    task = get_or_raise(Task, task_id)
    db.session.delete(task)
    commit_or_raise("Task")
    logger.info("Task deleted", extra={"task_id": task_id})


# ═════════════════════════════════════════════════════════════════════════════
# Role ↔ Task
# ═════════════════════════════════════════════════════════════════════════════

_ROLE_TASK_SORTABLE = {
    "display_order": RoleTask.display_order,
    "created_at": RoleTask.created_at,
    "id": RoleTask.id,
}


def _role_task_row(row) -> dict:
    link, task = row
    return {
        "role_task_id": link.id,
        "role_id": link.role_id,
        "task_id": link.task_id,
        "display_order": link.display_order,
        "linked_at": iso(link.created_at),
        "task": task.to_dict(),
    }


def _task_role_row(row) -> dict:
    link, role = row
    return {
        "role_task_id": link.id,
        "role_id": link.role_id,
        "task_id": link.task_id,
        "display_order": link.display_order,
        "linked_at": iso(link.created_at),
        "role": role.to_dict(),
    }


def link_task_to_role(role_id: int, task_id: int, display_order=None) -> dict:
    """Insert a RoleTask row.

    Raises:
        NotFoundError: role or task does not exist.
        ConflictError: the pair is already linked.
    """
    _check_ref("task_id", task_id)
    get_or_raise(Role, role_id)
    get_or_raise(Task, task_id)
    order = 0 if display_order is None else _check_order_value(display_order)

    link = RoleTask(role_id=role_id, task_id=task_id, display_order=order)
    db.session.add(link)
    commit_or_raise("RoleTask", field="role_id,task_id", value=(role_id, task_id))
    logger.info(
        "Task linked to role",
        extra={"role_id": role_id, "task_id": task_id, "display_order": order},
    )
    return link.to_dict()


def unlink_task_from_role(role_id: int, task_id: int) -> None:
    get_or_raise(Role, role_id)
    get_or_raise(Task, task_id)
    link = get_pair_or_raise(RoleTask, "RoleTask", role_id=role_id, task_id=task_id)
    db.session.delete(link)
    commit_or_raise("RoleTask")
    logger.info("Task unlinked from role", extra={"role_id": role_id, "task_id": task_id})


def tasks_for_role(role_id: int, *, limit=None, offset=None, order_by=None, order_direction=None) -> dict:
    """Tasks of one Role, each with this Role's own order for it."""
    get_or_raise(Role, role_id)
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(_ROLE_TASK_SORTABLE, order_by, order_direction, "display_order")
    stmt = (
        select(RoleTask, Task)
        .join(Task, Task.id == RoleTask.task_id)
        .where(RoleTask.role_id == role_id)
    )
    return paginate(
        stmt, limit=limit, offset=offset,
        order_clauses=(order, RoleTask.id.asc()),
        mapper=_role_task_row, scalars=False,
    )


def roles_for_task(task_id: int, *, limit=None, offset=None, order_by=None, order_direction=None) -> dict:
    get_or_raise(Task, task_id)
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(_ROLE_TASK_SORTABLE, order_by, order_direction, "display_order")
    stmt = (
        select(RoleTask, Role)
        .join(Role, Role.id == RoleTask.role_id)
        .where(RoleTask.task_id == task_id)
    )
    return paginate(
        stmt, limit=limit, offset=offset,
        order_clauses=(order, RoleTask.id.asc()),
        mapper=_task_role_row, scalars=False,
    )


def reorder_task_in_role(role_id: int, task_id: int, display_order) -> dict:
    """Set the order of one Task within one Role.  Siblings are untouched."""
    order = _check_order_value(display_order)
    link = get_pair_or_raise(RoleTask, "RoleTask", role_id=role_id, task_id=task_id)
    link.display_order = order
    commit_or_raise("RoleTask")
    logger.info(
        "Task reordered in role",
        extra={"role_id": role_id, "task_id": task_id, "display_order": order},
    )
    return link.to_dict()


def bulk_link_tasks_to_role(role_id: int, items) -> list[dict]:
    """Link several Tasks to one Role, all or nothing.

    Args:
        items: [{task_id, display_order?}, ...]
    """
    entries = check_batch(items, _batch_entry("task_id", with_notes=False))
    created = []
    with atomic("RoleTask"):
        get_or_raise(Role, role_id)
        for entry in entries:
            task_id = entry["task_id"]
            get_or_raise(Task, task_id)
            link = RoleTask(
                role_id=role_id, task_id=task_id, display_order=entry.get("display_order", 0),
            )
            db.session.add(link)
            flush_or_raise("RoleTask", field="role_id,task_id", value=(role_id, task_id))
            created.append(link)
    logger.info("Tasks bulk-linked to role", extra={"role_id": role_id, "count": len(created)})
    return [link.to_dict() for link in created]


# ═════════════════════════════════════════════════════════════════════════════
# Task ↔ Action
# ═════════════════════════════════════════════════════════════════════════════

_TASK_ACTION_SORTABLE = {
    "display_order": TaskAction.display_order,
    "created_at": TaskAction.created_at,
    "id": TaskAction.id,
}


def _task_action_row(row) -> dict:
    link, action = row
    return {
        "task_action_id": link.id,
        "task_id": link.task_id,
        "action_id": link.action_id,
        "display_order": link.display_order,
        "notes": link.notes,
        "linked_at": iso(link.created_at),
        "action": action.to_dict(),
    }


def _action_task_row(row) -> dict:
    link, task = row
    return {
        "task_action_id": link.id,
        "task_id": link.task_id,
        "action_id": link.action_id,
        "display_order": link.display_order,
        "notes": link.notes,
        "linked_at": iso(link.created_at),
        "task": task.to_dict(),
    }


def link_action_to_task(task_id: int, action_id: int, display_order=None, notes=None) -> dict:
    """Insert a TaskAction row with this Task's order and notes for the Action.

    Raises:
        NotFoundError: task or action does not exist.
        ConflictError: the pair is already linked.
    """
    _check_ref("action_id", action_id)
    get_or_raise(Task, task_id)
    get_or_raise(Action, action_id)
    order = 0 if display_order is None else _check_order_value(display_order)
    cleaned = FieldChecker({"notes": notes}).text(
        "notes", max_length=MAX_NOTES_LENGTH,
    ).validated("Invalid notes")

    link = TaskAction(task_id=task_id, action_id=action_id, display_order=order, **cleaned)
    db.session.add(link)
    commit_or_raise("TaskAction", field="task_id,action_id", value=(task_id, action_id))
    logger.info(
        "Action linked to task",
        extra={"task_id": task_id, "action_id": action_id, "display_order": order},
    )
    return link.to_dict()


def unlink_action_from_task(task_id: int, action_id: int) -> None:
    get_or_raise(Task, task_id)
    get_or_raise(Action, action_id)
    link = get_pair_or_raise(TaskAction, "TaskAction", task_id=task_id, action_id=action_id)
    db.session.delete(link)
    commit_or_raise("TaskAction")
    logger.info("Action unlinked from task", extra={"task_id": task_id, "action_id": action_id})


def actions_for_task(task_id: int, *, limit=None, offset=None, order_by=None, order_direction=None) -> dict:
    """Actions of one Task, each with this Task's order and notes."""
    get_or_raise(Task, task_id)
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(_TASK_ACTION_SORTABLE, order_by, order_direction, "display_order")
    stmt = (
        select(TaskAction, Action)
        .join(Action, Action.id == TaskAction.action_id)
        .where(TaskAction.task_id == task_id)
    )
    return paginate(
        stmt, limit=limit, offset=offset,
        order_clauses=(order, TaskAction.id.asc()),
        mapper=_task_action_row, scalars=False,
    )


def tasks_for_action(action_id: int, *, limit=None, offset=None, order_by=None, order_direction=None) -> dict:
    get_or_raise(Action, action_id)
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(_TASK_ACTION_SORTABLE, order_by, order_direction, "display_order")
    stmt = (
        select(TaskAction, Task)
        .join(Task, Task.id == TaskAction.task_id)
        .where(TaskAction.action_id == action_id)
    )
    return paginate(
        stmt, limit=limit, offset=offset,
        order_clauses=(order, TaskAction.id.asc()),
        mapper=_action_task_row, scalars=False,
    )


def reorder_action_in_task(task_id: int, action_id: int, display_order) -> dict:
    order = _check_order_value(display_order)
    link = get_pair_or_raise(TaskAction, "TaskAction", task_id=task_id, action_id=action_id)
    link.display_order = order
    commit_or_raise("TaskAction")
    logger.info(
        "Action reordered in task",
        extra={"task_id": task_id, "action_id": action_id, "display_order": order},
    )
    return link.to_dict()


def update_task_action(task_id: int, action_id: int, data: dict) -> dict:
    """Change display_order and/or notes on one TaskAction row."""
    link = get_pair_or_raise(TaskAction, "TaskAction", task_id=task_id, action_id=action_id)
    checker = FieldChecker(data, partial=True)
    checker.order("display_order")
    checker.text("notes", max_length=MAX_NOTES_LENGTH)
    checker.forbid("task_id", "action_id", reason="Unlink and relink to change the pair")
    cleaned = checker.validated("Invalid update data")

    for key, value in cleaned.items():
        setattr(link, key, value)
    commit_or_raise("TaskAction")
    logger.info(
        "Task action updated",
        extra={"task_id": task_id, "action_id": action_id, "fields": sorted(cleaned)},
    )
    return link.to_dict()


def bulk_link_actions_to_task(task_id: int, items) -> list[dict]:
    """Link several Actions to one Task, all or nothing.

    Args:
        items: [{action_id, display_order?, notes?}, ...]
    """
    entries = check_batch(items, _batch_entry("action_id", with_notes=True))
    created = []
    with atomic("TaskAction"):
        get_or_raise(Task, task_id)
        for entry in entries:
            action_id = entry["action_id"]
            get_or_raise(Action, action_id)
            link = TaskAction(
                task_id=task_id,
                action_id=action_id,
                display_order=entry.get("display_order", 0),
                notes=entry.get("notes"),
            )
            db.session.add(link)
            flush_or_raise("TaskAction", field="task_id,action_id", value=(task_id, action_id))
            created.append(link)
    logger.info("Actions bulk-linked to task", extra={"task_id": task_id, "count": len(created)})
    return [link.to_dict() for link in created]
