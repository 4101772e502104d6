"""
Action Service — atomic documentation units and their reference rows.

An Action hangs off exactly one hierarchy parent: a System *or* a
PracticeGroup.  Both-or-neither is rejected before any write.  Deleting an
Action removes it from every Task, Sequence and Link junction, plus its
screenshot reference rows.

Functions return serialised dicts; commits happen here only.
"""

import logging

from sqlalchemy import select

from techledger.core.exceptions import ValidationError
from techledger.models import db
from techledger.models.action import Action, ScreenshotRef
from techledger.models.hierarchy import PracticeGroup, System
from techledger.models.navigation import Task, TaskAction
from techledger.models.sequence import ActionSequence, SequenceAction
from techledger.services.helpers.listing import clamp_paging, paginate, resolve_ordering
from techledger.services.helpers.lookups import get_or_raise
from techledger.services.helpers.transactions import commit_or_raise
from techledger.services.helpers.validators import (
    MAX_DESCRIPTION_LENGTH,
    MAX_PATH_LENGTH,
    FieldChecker,
)

logger = logging.getLogger(__name__)

# parent kind → (model, Action FK column name)
PARENT_KINDS = {
    "system": (System, "system_id"),
    "practice_group": (PracticeGroup, "practice_group_id"),
}

SORTABLE = {
    "display_order": Action.display_order,
    "title": Action.title,
    "created_at": Action.created_at,
    "updated_at": Action.updated_at,
    "id": Action.id,
}


def _check_content(checker: FieldChecker) -> FieldChecker:
    checker.text("title", required=True)
    checker.text("description", max_length=MAX_DESCRIPTION_LENGTH)
    checker.json_list("steps")
    checker.json_list("screenshots")
    checker.order("display_order")
    return checker


def _resolve_parent(data: dict) -> tuple[str, int]:
    """Return (fk_column, parent_id) for exactly one supplied parent."""
    supplied = [
        (column, data.get(column))
        for _model, column in PARENT_KINDS.values()
        if data.get(column) is not None
    ]
    if len(supplied) != 1:
        raise ValidationError(
            "Action must belong to exactly one parent",
            details={"parent": "Provide either system_id or practice_group_id, not both"},
        )
    return supplied[0]


# ═════════════════════════════════════════════════════════════════════════════
# Actions
# ═════════════════════════════════════════════════════════════════════════════


def create_action(data: dict) -> dict:
    """Create an Action under a System or a PracticeGroup.

    Args:
        data: {system_id | practice_group_id (exactly one), title (required),
               description?, steps?, screenshots?, display_order?}

    Raises:
        ValidationError: bad fields, or both/neither parent supplied.
        NotFoundError: the named parent does not exist.
    """
    checker = _check_content(FieldChecker(data))
    checker.ref_id("system_id")
    checker.ref_id("practice_group_id")
    cleaned = checker.validated("Invalid action data")

    column, parent_id = _resolve_parent(cleaned)
    parent_model = System if column == "system_id" else PracticeGroup
    get_or_raise(parent_model, parent_id)

    action = Action(**cleaned)
    db.session.add(action)
    commit_or_raise("Action")
    logger.info("Action created", extra={"action_id": action.id, column: parent_id})
    return action.to_dict()


def get_action(action_id: int) -> dict:
    return get_or_raise(Action, action_id).to_dict()


def list_actions(
    parent_kind: str,
    parent_id: int,
    *,
    limit=None,
    offset=None,
    order_by=None,
    order_direction=None,
) -> dict:
    """List Actions under one System or PracticeGroup."""
    if parent_kind not in PARENT_KINDS:
        raise ValidationError(
            f"Unknown action parent '{parent_kind}'",
            details={"parent_kind": f"Must be one of: {', '.join(PARENT_KINDS)}"},
        )
    model, column = PARENT_KINDS[parent_kind]
    get_or_raise(model, parent_id)

    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(SORTABLE, order_by, order_direction, "display_order")
    stmt = select(Action).where(getattr(Action, column) == parent_id)
    return paginate(stmt, limit=limit, offset=offset, order_clauses=(order, Action.id.asc()))


def update_action(action_id: int, data: dict) -> dict:
    """Partial update.  The hierarchy parent cannot be changed."""
    action = get_or_raise(Action, action_id)
    checker = _check_content(FieldChecker(data, partial=True))
    checker.forbid(
        "system_id", "practice_group_id",
        reason="Parent cannot be changed; delete and recreate the action instead",
    )
    cleaned = checker.validated("Invalid update data")

    for key, value in cleaned.items():
        setattr(action, key, value)
    commit_or_raise("Action")
    logger.info("Action updated", extra={"action_id": action_id, "fields": sorted(cleaned)})
    return action.to_dict()


def delete_action(action_id: int) -> None:
    action = get_or_raise(Action, action_id)
    db.session.delete(action)
    commit_or_raise("Action")
    logger.info("Action deleted", extra={"action_id": action_id})


def get_action_memberships(action_id: int) -> dict:
    """Every route that reaches one Action.

    Returns the hierarchy placement, each Task membership with that Task's
    own order and notes, and each Sequence position.
    """
    action = get_or_raise(Action, action_id)

    task_rows = db.session.execute(
        select(TaskAction, Task)
        .join(Task, Task.id == TaskAction.task_id)
        .where(TaskAction.action_id == action_id)
        .order_by(Task.name, TaskAction.id)
    ).all()

    sequence_rows = db.session.execute(
        select(SequenceAction, ActionSequence)
        .join(ActionSequence, ActionSequence.id == SequenceAction.sequence_id)
        .where(SequenceAction.action_id == action_id)
        .order_by(ActionSequence.name, SequenceAction.id)
    ).all()

    if action.system_id is not None:
        placement = {"kind": "system", "id": action.system_id, "name": action.system.name}
    else:
        group = action.practice_group
        placement = {
            "kind": "practice_group",
            "id": group.id,
            "name": group.name,
            "department_id": group.department_id,
            "system_id": group.department.system_id,
        }

    return {
        "action": action.to_dict(),
        "hierarchy": placement,
        "tasks": [
            {
                "task_id": task.id,
                "task_name": task.name,
                "display_order": link.display_order,
                "notes": link.notes,
            }
            for link, task in task_rows
        ],
        "sequences": [
            {
                "sequence_id": seq.id,
                "sequence_name": seq.name,
                "sequence_action_id": step.id,
                "order_number": step.order_number,
            }
            for step, seq in sequence_rows
        ],
    }


# ═════════════════════════════════════════════════════════════════════════════
# Screenshot reference rows
# ═════════════════════════════════════════════════════════════════════════════


def add_screenshot_ref(action_id: int, data: dict) -> dict:
    """Record a pointer to a screenshot held by the ingestion service."""
    get_or_raise(Action, action_id)
    checker = FieldChecker(data)
    checker.text("file_path", required=True, max_length=MAX_PATH_LENGTH)
    checker.text("original_filename")
    cleaned = checker.validated("Invalid screenshot data")

    ref = ScreenshotRef(action_id=action_id, **cleaned)
    db.session.add(ref)
    commit_or_raise("ScreenshotRef")
    logger.info("Screenshot ref added", extra={"action_id": action_id, "screenshot_id": ref.id})
    return ref.to_dict()


def list_screenshot_refs(action_id: int) -> list[dict]:
    get_or_raise(Action, action_id)
    refs = db.session.execute(
        select(ScreenshotRef)
        .where(ScreenshotRef.action_id == action_id)
        .order_by(ScreenshotRef.uploaded_at, ScreenshotRef.id)
    ).scalars().all()
    return [r.to_dict() for r in refs]


def delete_screenshot_ref(screenshot_id: int) -> None:
    ref = get_or_raise(ScreenshotRef, screenshot_id, label="Screenshot")
    db.session.delete(ref)
    commit_or_raise("ScreenshotRef")
    logger.info("Screenshot ref deleted", extra={"screenshot_id": screenshot_id})
