"""
Tests: Actions and screenshot reference rows.

Covers:
    - single-parent rule (system XOR practice group)
    - parent existence, no re-parenting, opaque steps payload
    - listing per parent kind
    - membership view across tasks and sequences
    - cascade: deleting an Action clears every junction row that used it
"""

import pytest

from techledger.core.exceptions import NotFoundError, ValidationError
from techledger.models import db as _db
from techledger.models.action import ScreenshotRef
from techledger.models.links import ActionLink
from techledger.models.navigation import TaskAction
from techledger.models.sequence import SequenceAction
from techledger.services import (
    action_service,
    link_service,
    navigation_service,
    sequence_service,
)


def _make_action(group_id, title="Login to QuickBooks", **extra):
    return action_service.create_action({"practice_group_id": group_id, "title": title, **extra})


class TestCreateAction:
    def test_create_under_practice_group(self, hierarchy):
        steps = [{"n": 1, "text": "Open the app"}, {"n": 2, "text": "Sign in"}]
        action = _make_action(hierarchy["practice_group"]["id"], steps=steps)
        assert action["practice_group_id"] == hierarchy["practice_group"]["id"]
        assert action["system_id"] is None
        assert action["steps"] == steps
        assert action["screenshots"] == []

    def test_create_under_system(self, hierarchy):
        action = action_service.create_action(
            {"system_id": hierarchy["system"]["id"], "title": "Global shortcut"},
        )
        assert action["system_id"] == hierarchy["system"]["id"]
        assert action["practice_group_id"] is None

    def test_both_parents_rejected(self, hierarchy):
        with pytest.raises(ValidationError):
            action_service.create_action({
                "system_id": hierarchy["system"]["id"],
                "practice_group_id": hierarchy["practice_group"]["id"],
                "title": "Ambiguous",
            })

    def test_no_parent_rejected(self):
        with pytest.raises(ValidationError):
            action_service.create_action({"title": "Orphan"})

    def test_missing_parent_not_found(self):
        with pytest.raises(NotFoundError):
            action_service.create_action({"practice_group_id": 777, "title": "Lost"})

    def test_steps_must_be_a_list(self, hierarchy):
        with pytest.raises(ValidationError) as exc:
            _make_action(hierarchy["practice_group"]["id"], steps="not a list")
        assert "steps" in exc.value.details


class TestUpdateAndList:
    def test_update_title_and_steps(self, hierarchy):
        action = _make_action(hierarchy["practice_group"]["id"])
        updated = action_service.update_action(
            action["id"], {"title": "Sign in", "steps": [{"n": 1}]},
        )
        assert updated["title"] == "Sign in"
        assert updated["steps"] == [{"n": 1}]

    def test_update_cannot_move_parent(self, hierarchy):
        action = _make_action(hierarchy["practice_group"]["id"])
        with pytest.raises(ValidationError) as exc:
            action_service.update_action(action["id"], {"system_id": hierarchy["system"]["id"]})
        assert "system_id" in exc.value.details

    def test_list_by_practice_group_in_display_order(self, hierarchy):
        group_id = hierarchy["practice_group"]["id"]
        _make_action(group_id, "Third", display_order=3)
        _make_action(group_id, "First", display_order=1)
        page = action_service.list_actions("practice_group", group_id)
        assert [a["title"] for a in page["data"]] == ["First", "Third"]
        assert page["total"] == 2

    def test_list_by_system_excludes_group_actions(self, hierarchy):
        _make_action(hierarchy["practice_group"]["id"])
        page = action_service.list_actions("system", hierarchy["system"]["id"])
        assert page["total"] == 0

    def test_list_unknown_parent_kind(self):
        with pytest.raises(ValidationError):
            action_service.list_actions("department", 1)


class TestMemberships:
    def test_memberships_show_every_route(self, hierarchy):
        group_id = hierarchy["practice_group"]["id"]
        action = _make_action(group_id)
        task = navigation_service.create_task({"name": "Pay Vendors"}, "u-1")
        navigation_service.link_action_to_task(
            task["id"], action["id"], display_order=1, notes="sign in first",
        )
        sequence = sequence_service.create_sequence(group_id, {"name": "Weekly Run"})
        sequence_service.add_action(sequence["id"], {"action_id": action["id"], "order_number": 1})

        view = action_service.get_action_memberships(action["id"])
        assert view["hierarchy"]["kind"] == "practice_group"
        assert view["hierarchy"]["system_id"] == hierarchy["system"]["id"]
        assert view["tasks"] == [{
            "task_id": task["id"],
            "task_name": "Pay Vendors",
            "display_order": 1,
            "notes": "sign in first",
        }]
        assert view["sequences"][0]["sequence_name"] == "Weekly Run"
        assert view["sequences"][0]["order_number"] == 1


class TestScreenshotRefs:
    def test_add_list_delete(self, hierarchy):
        action = _make_action(hierarchy["practice_group"]["id"])
        ref = action_service.add_screenshot_ref(
            action["id"], {"file_path": "uploads/login.png", "original_filename": "login.png"},
        )
        assert ref["action_id"] == action["id"]
        assert len(action_service.list_screenshot_refs(action["id"])) == 1

        action_service.delete_screenshot_ref(ref["id"])
        assert action_service.list_screenshot_refs(action["id"]) == []

    def test_file_path_required(self, hierarchy):
        action = _make_action(hierarchy["practice_group"]["id"])
        with pytest.raises(ValidationError):
            action_service.add_screenshot_ref(action["id"], {"original_filename": "x.png"})

    def test_delete_missing_screenshot(self):
        with pytest.raises(NotFoundError):
            action_service.delete_screenshot_ref(55)


class TestActionCascade:
    def test_delete_action_clears_all_junctions(self, hierarchy):
        group_id = hierarchy["practice_group"]["id"]
        action = _make_action(group_id)
        keep = _make_action(group_id, "Open Vendor Center")

        task_a = navigation_service.create_task({"name": "Pay Vendors"}, "u-1")
        task_b = navigation_service.create_task({"name": "Month End"}, "u-1")
        navigation_service.link_action_to_task(task_a["id"], action["id"])
        navigation_service.link_action_to_task(task_b["id"], action["id"])
        navigation_service.link_action_to_task(task_a["id"], keep["id"])

        sequence = sequence_service.create_sequence(group_id, {"name": "Run"})
        sequence_service.add_action(sequence["id"], {"action_id": action["id"], "order_number": 1})

        link = link_service.create_link({"url": "https://kb.example.com/a", "title": "KB"})
        link_service.attach_link("action", action["id"], {"link_id": link["id"]})
        action_service.add_screenshot_ref(action["id"], {"file_path": "a.png"})

        action_service.delete_action(action["id"])

        with pytest.raises(NotFoundError):
            action_service.get_action(action["id"])
        remaining = _db.session.query(TaskAction).all()
        assert [(r.task_id, r.action_id) for r in remaining] == [(task_a["id"], keep["id"])]
        assert _db.session.query(SequenceAction).count() == 0
        assert _db.session.query(ActionLink).count() == 0
        assert _db.session.query(ScreenshotRef).count() == 0
        # Sequence itself survives, now empty
        assert sequence_service.get_sequence_with_actions(sequence["id"])["actions"] == []
