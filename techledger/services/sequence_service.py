"""
Sequence Service — explicit, authored workflows inside a PracticeGroup.

Ordering rules (stricter than the navigation junctions):
    - (sequence_id, action_id) is unique: an Action appears once per sequence.
    - (sequence_id, order_number) is unique: no two steps share a position.
    - order_number starts at 1; gaps are legal.

Both rules are enforced by the database.  A collision on insert or on
reorder surfaces as ConflictError; the store never swaps two steps to make
room.  Steps are edited through the junction row's own id.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from techledger.core.exceptions import ConflictError, ValidationError
from techledger.models import db
from techledger.models.action import Action
from techledger.models.hierarchy import PracticeGroup
from techledger.models.sequence import ActionSequence, SequenceAction
from techledger.services.helpers.listing import clamp_paging, paginate, resolve_ordering
from techledger.services.helpers.lookups import get_or_raise
from techledger.services.helpers.transactions import (
    commit_or_raise,
    constraint_message,
    is_unique_violation,
    translate_integrity_error,
)
from techledger.services.helpers.validators import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NOTES_LENGTH,
    FieldChecker,
)

logger = logging.getLogger(__name__)

SORTABLE = {
    "name": ActionSequence.name,
    "created_at": ActionSequence.created_at,
    "updated_at": ActionSequence.updated_at,
    "id": ActionSequence.id,
}


def _commit_step(sequence_id: int, action_id: int, order_number: int) -> None:
    """Commit a SequenceAction write, naming the constraint that was hit."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if not is_unique_violation(exc):
            raise translate_integrity_error(exc, "SequenceAction", "id") from exc
        msg = constraint_message(exc)
        if "order_number" in msg or "uq_sequence_actions_order" in msg:
            logger.warning(
                "Order number taken",
                extra={"sequence_id": sequence_id, "order_number": order_number},
            )
            raise ConflictError("SequenceAction", "order_number", order_number) from exc
        logger.warning(
            "Action already in sequence",
            extra={"sequence_id": sequence_id, "action_id": action_id},
        )
        raise ConflictError("SequenceAction", "action_id", action_id) from exc


# ═════════════════════════════════════════════════════════════════════════════
# Sequences
# ═════════════════════════════════════════════════════════════════════════════


def create_sequence(practice_group_id: int, data: dict) -> dict:
    get_or_raise(PracticeGroup, practice_group_id)
    checker = FieldChecker(data)
    checker.text("name", required=True)
    checker.text("description", max_length=MAX_DESCRIPTION_LENGTH)
    cleaned = checker.validated("Invalid sequence data")

    sequence = ActionSequence(practice_group_id=practice_group_id, **cleaned)
    db.session.add(sequence)
    commit_or_raise("ActionSequence")
    logger.info(
        "Sequence created",
        extra={"sequence_id": sequence.id, "practice_group_id": practice_group_id},
    )
    return sequence.to_dict()


def get_sequence(sequence_id: int) -> dict:
    return get_or_raise(ActionSequence, sequence_id).to_dict()


def list_sequences(
    practice_group_id: int, *, limit=None, offset=None, order_by=None, order_direction=None,
) -> dict:
    get_or_raise(PracticeGroup, practice_group_id)
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(SORTABLE, order_by, order_direction, "created_at", "DESC")
    stmt = select(ActionSequence).where(ActionSequence.practice_group_id == practice_group_id)
    return paginate(
        stmt, limit=limit, offset=offset, order_clauses=(order, ActionSequence.id.desc()),
    )


def update_sequence(sequence_id: int, data: dict) -> dict:
    sequence = get_or_raise(ActionSequence, sequence_id)
    checker = FieldChecker(data, partial=True)
    checker.text("name", required=True)
    checker.text("description", max_length=MAX_DESCRIPTION_LENGTH)
    checker.forbid(
        "practice_group_id",
        reason="Parent cannot be changed; delete and recreate the sequence instead",
    )
    cleaned = checker.validated("Invalid update data")

    for key, value in cleaned.items():
        setattr(sequence, key, value)
    commit_or_raise("ActionSequence")
    logger.info("Sequence updated", extra={"sequence_id": sequence_id})
    return sequence.to_dict()


def delete_sequence(sequence_id: int) -> None:
    sequence = get_or_raise(ActionSequence, sequence_id)
    db.session.delete(sequence)
    commit_or_raise("ActionSequence")
    logger.info("Sequence deleted", extra={"sequence_id": sequence_id})


def get_sequence_with_actions(sequence_id: int) -> dict:
    """Sequence plus its steps, ascending by order_number, each with its Action.

    An empty sequence carries ``"actions": []``.
    """
    sequence = get_or_raise(ActionSequence, sequence_id)
    rows = db.session.execute(
        select(SequenceAction, Action)
        .join(Action, Action.id == SequenceAction.action_id)
        .where(SequenceAction.sequence_id == sequence_id)
        .order_by(SequenceAction.order_number.asc())
    ).all()

    result = sequence.to_dict()
    result["actions"] = []
    for step, action in rows:
        item = step.to_dict()
        item["action"] = action.to_dict()
        result["actions"].append(item)
    return result


# ═════════════════════════════════════════════════════════════════════════════
# Steps (SequenceAction junction)
# ═════════════════════════════════════════════════════════════════════════════


def add_action(sequence_id: int, data: dict) -> dict:
    """Pin an Action into a sequence at ``order_number``.

    Args:
        data: {action_id (required), order_number (required, ≥ 1), notes?}

    Raises:
        NotFoundError: sequence or action does not exist.
        ConflictError: action already in the sequence, or position taken.
    """
    checker = FieldChecker(data)
    checker.ref_id("action_id", required=True)
    checker.order("order_number", required=True, minimum=1)
    checker.text("notes", max_length=MAX_NOTES_LENGTH)
    cleaned = checker.validated("Invalid sequence step data")

    get_or_raise(ActionSequence, sequence_id)
    get_or_raise(Action, cleaned["action_id"])

    step = SequenceAction(sequence_id=sequence_id, **cleaned)
    db.session.add(step)
    _commit_step(sequence_id, cleaned["action_id"], cleaned["order_number"])
    logger.info(
        "Action added to sequence",
        extra={
            "sequence_id": sequence_id,
            "action_id": step.action_id,
            "order_number": step.order_number,
        },
    )
    return step.to_dict(include_action=True)


def update_sequence_action(sequence_action_id: int, data: dict) -> dict:
    """Change order_number and/or notes of one step."""
    step = get_or_raise(SequenceAction, sequence_action_id)
    checker = FieldChecker(data, partial=True)
    checker.order("order_number", minimum=1)
    checker.text("notes", max_length=MAX_NOTES_LENGTH)
    checker.forbid(
        "sequence_id", "action_id",
        reason="A step cannot be moved to another sequence or action; remove and re-add it",
    )
    cleaned = checker.validated("Invalid update data")

    for key, value in cleaned.items():
        setattr(step, key, value)
    _commit_step(step.sequence_id, step.action_id, step.order_number)
    logger.info(
        "Sequence step updated",
        extra={"sequence_action_id": sequence_action_id, "fields": sorted(cleaned)},
    )
    return step.to_dict(include_action=True)


def reorder_sequence_action(sequence_action_id: int, order_number) -> dict:
    """Move one step to ``order_number``; ConflictError if the slot is taken."""
    if order_number is None:
        raise ValidationError(
            "Invalid order", details={"order_number": "order_number is required"},
        )
    return update_sequence_action(sequence_action_id, {"order_number": order_number})


def remove_sequence_action(sequence_action_id: int) -> None:
    step = get_or_raise(SequenceAction, sequence_action_id)
    sequence_id = step.sequence_id
    db.session.delete(step)
    commit_or_raise("SequenceAction")
    logger.info(
        "Action removed from sequence",
        extra={"sequence_id": sequence_id, "sequence_action_id": sequence_action_id},
    )
