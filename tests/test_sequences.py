"""
Tests: ActionSequence ordering rules.

Covers:
    - (sequence, action) unique and (sequence, order_number) unique
    - order_number ≥ 1, gaps allowed, read-back sorted ascending
    - reorder into a free slot succeeds; into a taken slot conflicts
    - empty sequence reads back with an empty step list
    - deleting a sequence removes its steps, never the Actions
"""

import pytest

from techledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from techledger.models import db as _db
from techledger.models.sequence import SequenceAction
from techledger.services import action_service, sequence_service


@pytest.fixture()
def setup(hierarchy):
    group_id = hierarchy["practice_group"]["id"]
    actions = [
        action_service.create_action({"practice_group_id": group_id, "title": title})
        for title in ("Login", "Navigate", "Create", "Save")
    ]
    sequence = sequence_service.create_sequence(group_id, {"name": "Complete Lead Creation"})
    return {"group_id": group_id, "actions": actions, "sequence": sequence}


def _add(sequence_id, action_id, order_number, **extra):
    return sequence_service.add_action(
        sequence_id, {"action_id": action_id, "order_number": order_number, **extra},
    )


class TestSequenceCrud:
    def test_create_requires_existing_group(self):
        with pytest.raises(NotFoundError):
            sequence_service.create_sequence(999, {"name": "Nope"})

    def test_update_name(self, setup):
        updated = sequence_service.update_sequence(setup["sequence"]["id"], {"name": "Leads"})
        assert updated["name"] == "Leads"

    def test_update_cannot_move_group(self, setup):
        with pytest.raises(ValidationError):
            sequence_service.update_sequence(
                setup["sequence"]["id"], {"practice_group_id": setup["group_id"]},
            )

    def test_list_newest_first(self, setup):
        second = sequence_service.create_sequence(setup["group_id"], {"name": "Second"})
        page = sequence_service.list_sequences(setup["group_id"])
        assert page["total"] == 2
        assert page["data"][0]["id"] == second["id"]

    def test_empty_sequence_has_empty_steps(self, setup):
        result = sequence_service.get_sequence_with_actions(setup["sequence"]["id"])
        assert result["name"] == "Complete Lead Creation"
        assert result["actions"] == []


class TestSequenceSteps:
    def test_steps_read_back_in_order_number_order(self, setup):
        seq_id = setup["sequence"]["id"]
        login, navigate, create, save = setup["actions"]
        _add(seq_id, save["id"], 10)
        _add(seq_id, login["id"], 1)
        _add(seq_id, create["id"], 5, notes="fill the mandatory fields")
        _add(seq_id, navigate["id"], 2)

        steps = sequence_service.get_sequence_with_actions(seq_id)["actions"]
        assert [s["order_number"] for s in steps] == [1, 2, 5, 10]
        assert [s["action"]["title"] for s in steps] == ["Login", "Navigate", "Create", "Save"]
        assert steps[2]["notes"] == "fill the mandatory fields"

    def test_add_returns_step_with_action(self, setup):
        step = _add(setup["sequence"]["id"], setup["actions"][0]["id"], 1)
        assert step["order_number"] == 1
        assert step["action"]["title"] == "Login"

    def test_order_number_must_be_positive(self, setup):
        with pytest.raises(ValidationError) as exc:
            _add(setup["sequence"]["id"], setup["actions"][0]["id"], 0)
        assert "order_number" in exc.value.details

    def test_order_number_required(self, setup):
        with pytest.raises(ValidationError):
            sequence_service.add_action(
                setup["sequence"]["id"], {"action_id": setup["actions"][0]["id"]},
            )

    def test_same_action_twice_conflicts(self, setup):
        seq_id = setup["sequence"]["id"]
        action_id = setup["actions"][0]["id"]
        _add(seq_id, action_id, 1)
        with pytest.raises(ConflictError) as exc:
            _add(seq_id, action_id, 2)
        assert exc.value.field == "action_id"

    def test_taken_order_number_conflicts(self, setup):
        seq_id = setup["sequence"]["id"]
        _add(seq_id, setup["actions"][0]["id"], 1)
        with pytest.raises(ConflictError) as exc:
            _add(seq_id, setup["actions"][1]["id"], 1)
        assert exc.value.field == "order_number"
        assert _db.session.query(SequenceAction).count() == 1

    def test_same_action_in_two_sequences(self, setup):
        other = sequence_service.create_sequence(setup["group_id"], {"name": "Other"})
        action_id = setup["actions"][0]["id"]
        _add(setup["sequence"]["id"], action_id, 1)
        _add(other["id"], action_id, 1)
        assert _db.session.query(SequenceAction).count() == 2

    def test_missing_action_not_found(self, setup):
        with pytest.raises(NotFoundError):
            _add(setup["sequence"]["id"], 9999, 1)

    def test_missing_sequence_not_found(self, setup):
        with pytest.raises(NotFoundError):
            _add(9999, setup["actions"][0]["id"], 1)


class TestReorder:
    def test_reorder_into_free_slot(self, setup):
        seq_id = setup["sequence"]["id"]
        login, navigate = setup["actions"][:2]
        first = _add(seq_id, login["id"], 1)
        _add(seq_id, navigate["id"], 2)

        moved = sequence_service.reorder_sequence_action(first["id"], 3)
        assert moved["order_number"] == 3
        steps = sequence_service.get_sequence_with_actions(seq_id)["actions"]
        assert [s["action"]["title"] for s in steps] == ["Navigate", "Login"]

    def test_reorder_into_taken_slot_conflicts_and_keeps_state(self, setup):
        seq_id = setup["sequence"]["id"]
        login, navigate = setup["actions"][:2]
        first = _add(seq_id, login["id"], 1)
        _add(seq_id, navigate["id"], 2)

        with pytest.raises(ConflictError) as exc:
            sequence_service.reorder_sequence_action(first["id"], 2)
        assert exc.value.field == "order_number"

        steps = sequence_service.get_sequence_with_actions(seq_id)["actions"]
        assert [(s["order_number"], s["action"]["title"]) for s in steps] == [
            (1, "Login"), (2, "Navigate"),
        ]

    def test_reorder_requires_value(self, setup):
        step = _add(setup["sequence"]["id"], setup["actions"][0]["id"], 1)
        with pytest.raises(ValidationError):
            sequence_service.reorder_sequence_action(step["id"], None)

    def test_update_notes_only(self, setup):
        step = _add(setup["sequence"]["id"], setup["actions"][0]["id"], 1)
        updated = sequence_service.update_sequence_action(step["id"], {"notes": "use SSO"})
        assert updated["notes"] == "use SSO"
        assert updated["order_number"] == 1

    def test_step_cannot_change_action(self, setup):
        step = _add(setup["sequence"]["id"], setup["actions"][0]["id"], 1)
        with pytest.raises(ValidationError):
            sequence_service.update_sequence_action(
                step["id"], {"action_id": setup["actions"][1]["id"]},
            )


class TestRemoveAndDelete:
    def test_remove_step(self, setup):
        step = _add(setup["sequence"]["id"], setup["actions"][0]["id"], 1)
        sequence_service.remove_sequence_action(step["id"])
        with pytest.raises(NotFoundError):
            sequence_service.remove_sequence_action(step["id"])

    def test_delete_sequence_keeps_actions(self, setup):
        seq_id = setup["sequence"]["id"]
        for number, action in enumerate(setup["actions"], start=1):
            _add(seq_id, action["id"], number)

        sequence_service.delete_sequence(seq_id)

        assert _db.session.query(SequenceAction).count() == 0
        for action in setup["actions"]:
            assert action_service.get_action(action["id"])["id"] == action["id"]
