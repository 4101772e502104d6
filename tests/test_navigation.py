"""
Tests: Role ↔ Task ↔ Action navigation graph.

Covers:
    - insert-only junctions: duplicate pair → ConflictError
    - missing parent → NotFoundError, checked before the conflict
    - per-parent ordering and notes live on the junction row
    - both directions of every junction
    - bulk linking is all or nothing
    - cascade on Role / Task delete
    - the Office Manager → Pay Vendors → Login to QuickBooks walk
"""

import pytest

from techledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from techledger.models import db as _db
from techledger.models.navigation import RoleTask, TaskAction
from techledger.services import action_service, navigation_service

OWNER = "owner-42"


def _role(name="Office Manager", **extra):
    return navigation_service.create_role({"name": name, **extra}, OWNER)


def _task(name="Pay Vendors", **extra):
    return navigation_service.create_task({"name": name, **extra}, OWNER)


def _action(group_id, title="Login to QuickBooks"):
    return action_service.create_action({"practice_group_id": group_id, "title": title})


# ── Roles & tasks ─────────────────────────────────────────────────────────────


class TestRolesAndTasks:
    def test_create_role_records_owner(self):
        role = _role()
        assert role["owner_id"] == OWNER
        assert role["display_order"] == 0

    def test_create_role_without_owner_rejected(self):
        with pytest.raises(ValidationError) as exc:
            navigation_service.create_role({"name": "Nobody's"}, None)
        assert "owner_id" in exc.value.details

    def test_update_role_cannot_change_owner(self):
        role = _role()
        with pytest.raises(ValidationError):
            navigation_service.update_role(role["id"], {"owner_id": "someone-else"})

    def test_list_roles_by_owner(self):
        _role("Mine")
        navigation_service.create_role({"name": "Theirs"}, "other-owner")
        page = navigation_service.list_roles(OWNER)
        assert [r["name"] for r in page["data"]] == ["Mine"]

    def test_update_task_description(self):
        task = _task()
        updated = navigation_service.update_task(task["id"], {"description": "Weekly"})
        assert updated["description"] == "Weekly"
        assert updated["name"] == "Pay Vendors"


# ── Role ↔ Task ───────────────────────────────────────────────────────────────


class TestRoleTask:
    def test_link_and_list_in_role_order(self):
        role = _role()
        pay = _task("Pay Vendors")
        close = _task("Close Month")
        navigation_service.link_task_to_role(role["id"], pay["id"], display_order=2)
        navigation_service.link_task_to_role(role["id"], close["id"], display_order=1)

        page = navigation_service.tasks_for_role(role["id"])
        assert page["total"] == 2
        assert [row["task"]["name"] for row in page["data"]] == ["Close Month", "Pay Vendors"]
        assert page["data"][0]["display_order"] == 1

    def test_duplicate_link_conflicts(self):
        role, task = _role(), _task()
        navigation_service.link_task_to_role(role["id"], task["id"])
        with pytest.raises(ConflictError):
            navigation_service.link_task_to_role(role["id"], task["id"], display_order=5)
        assert _db.session.query(RoleTask).count() == 1

    def test_missing_role_is_not_found_not_conflict(self):
        task = _task()
        with pytest.raises(NotFoundError):
            navigation_service.link_task_to_role(9999, task["id"])

    def test_missing_task_is_not_found(self):
        role = _role()
        with pytest.raises(NotFoundError):
            navigation_service.link_task_to_role(role["id"], 9999)

    def test_task_id_must_be_given(self):
        role = _role()
        with pytest.raises(ValidationError):
            navigation_service.link_task_to_role(role["id"], None)

    def test_roles_for_task(self):
        task = _task()
        manager = _role("Office Manager")
        owner = _role("Business Owner")
        navigation_service.link_task_to_role(manager["id"], task["id"])
        navigation_service.link_task_to_role(owner["id"], task["id"])

        names = {row["role"]["name"] for row in navigation_service.roles_for_task(task["id"])["data"]}
        assert names == {"Office Manager", "Business Owner"}

    def test_reorder_touches_only_one_row(self):
        role = _role()
        first, second = _task("A"), _task("B")
        navigation_service.link_task_to_role(role["id"], first["id"], display_order=1)
        navigation_service.link_task_to_role(role["id"], second["id"], display_order=2)

        navigation_service.reorder_task_in_role(role["id"], first["id"], 2)

        orders = {
            row["task_id"]: row["display_order"]
            for row in navigation_service.tasks_for_role(role["id"])["data"]
        }
        assert orders == {first["id"]: 2, second["id"]: 2}

    def test_reorder_unlinked_pair_not_found(self):
        role, task = _role(), _task()
        with pytest.raises(NotFoundError):
            navigation_service.reorder_task_in_role(role["id"], task["id"], 1)

    def test_unlink_then_relink(self):
        role, task = _role(), _task()
        navigation_service.link_task_to_role(role["id"], task["id"])
        navigation_service.unlink_task_from_role(role["id"], task["id"])
        assert navigation_service.tasks_for_role(role["id"])["total"] == 0
        navigation_service.link_task_to_role(role["id"], task["id"])
        assert navigation_service.tasks_for_role(role["id"])["total"] == 1

    def test_unlink_missing_pair_not_found(self):
        role, task = _role(), _task()
        with pytest.raises(NotFoundError):
            navigation_service.unlink_task_from_role(role["id"], task["id"])


# ── Task ↔ Action ─────────────────────────────────────────────────────────────


class TestTaskAction:
    def test_same_action_differs_per_task(self, hierarchy):
        login = _action(hierarchy["practice_group"]["id"])
        pay = _task("Pay Vendors")
        payroll = _task("Run Payroll")
        navigation_service.link_action_to_task(pay["id"], login["id"], 1, "use the AP account")
        navigation_service.link_action_to_task(payroll["id"], login["id"], 3, "use the HR account")

        rows = navigation_service.tasks_for_action(login["id"])["data"]
        by_task = {row["task"]["name"]: (row["display_order"], row["notes"]) for row in rows}
        assert by_task == {
            "Pay Vendors": (1, "use the AP account"),
            "Run Payroll": (3, "use the HR account"),
        }

        navigation_service.update_task_action(pay["id"], login["id"], {"notes": "changed"})
        rows = navigation_service.tasks_for_action(login["id"])["data"]
        by_task = {row["task"]["name"]: row["notes"] for row in rows}
        assert by_task["Run Payroll"] == "use the HR account"
        assert by_task["Pay Vendors"] == "changed"

    def test_duplicate_action_link_conflicts(self, hierarchy):
        action = _action(hierarchy["practice_group"]["id"])
        task = _task()
        navigation_service.link_action_to_task(task["id"], action["id"])
        with pytest.raises(ConflictError):
            navigation_service.link_action_to_task(task["id"], action["id"])

    def test_missing_action_not_found(self):
        task = _task()
        with pytest.raises(NotFoundError):
            navigation_service.link_action_to_task(task["id"], 4321)

    def test_actions_for_task_ordered(self, hierarchy):
        group_id = hierarchy["practice_group"]["id"]
        task = _task()
        late = _action(group_id, "Record Payment")
        early = _action(group_id, "Login")
        navigation_service.link_action_to_task(task["id"], late["id"], display_order=2)
        navigation_service.link_action_to_task(task["id"], early["id"], display_order=1)

        rows = navigation_service.actions_for_task(task["id"])["data"]
        assert [row["action"]["title"] for row in rows] == ["Login", "Record Payment"]

    def test_negative_order_rejected(self, hierarchy):
        action = _action(hierarchy["practice_group"]["id"])
        task = _task()
        with pytest.raises(ValidationError):
            navigation_service.link_action_to_task(task["id"], action["id"], display_order=-1)

    def test_update_task_action_cannot_repoint(self, hierarchy):
        action = _action(hierarchy["practice_group"]["id"])
        task = _task()
        navigation_service.link_action_to_task(task["id"], action["id"])
        with pytest.raises(ValidationError):
            navigation_service.update_task_action(task["id"], action["id"], {"action_id": 2})

    def test_reorder_action_in_task(self, hierarchy):
        action = _action(hierarchy["practice_group"]["id"])
        task = _task()
        navigation_service.link_action_to_task(task["id"], action["id"], display_order=1)
        row = navigation_service.reorder_action_in_task(task["id"], action["id"], 7)
        assert row["display_order"] == 7


# ── Bulk ──────────────────────────────────────────────────────────────────────


class TestBulkLinking:
    def test_bulk_link_tasks(self):
        role = _role()
        tasks = [_task(f"T{i}") for i in range(3)]
        created = navigation_service.bulk_link_tasks_to_role(role["id"], [
            {"task_id": t["id"], "display_order": i} for i, t in enumerate(tasks)
        ])
        assert len(created) == 3
        assert navigation_service.tasks_for_role(role["id"])["total"] == 3

    def test_bulk_link_tasks_rolls_back_on_duplicate(self):
        role = _role()
        first, second = _task("A"), _task("B")
        with pytest.raises(ConflictError):
            navigation_service.bulk_link_tasks_to_role(role["id"], [
                {"task_id": first["id"]},
                {"task_id": second["id"]},
                {"task_id": first["id"]},
            ])
        assert _db.session.query(RoleTask).count() == 0

    def test_bulk_link_tasks_rolls_back_on_missing_task(self):
        role = _role()
        task = _task()
        with pytest.raises(NotFoundError):
            navigation_service.bulk_link_tasks_to_role(role["id"], [
                {"task_id": task["id"]},
                {"task_id": 9999},
            ])
        assert _db.session.query(RoleTask).count() == 0

    def test_bulk_link_actions_conflict_with_existing_row(self, hierarchy):
        group_id = hierarchy["practice_group"]["id"]
        task = _task()
        a, b = _action(group_id, "A"), _action(group_id, "B")
        navigation_service.link_action_to_task(task["id"], b["id"])

        with pytest.raises(ConflictError):
            navigation_service.bulk_link_actions_to_task(task["id"], [
                {"action_id": a["id"], "notes": "first"},
                {"action_id": b["id"]},
            ])
        rows = _db.session.query(TaskAction).all()
        assert [(r.task_id, r.action_id) for r in rows] == [(task["id"], b["id"])]

    def test_bulk_validation_reports_entry_index(self):
        role = _role()
        with pytest.raises(ValidationError) as exc:
            navigation_service.bulk_link_tasks_to_role(role["id"], [
                {"task_id": 1}, {"task_id": "x"},
            ])
        assert "items[1]" in exc.value.details

    def test_bulk_empty_list_rejected(self):
        role = _role()
        with pytest.raises(ValidationError):
            navigation_service.bulk_link_tasks_to_role(role["id"], [])


# ── Cascade ───────────────────────────────────────────────────────────────────


class TestNavigationCascade:
    def test_delete_task_removes_junctions_only(self, hierarchy):
        action = _action(hierarchy["practice_group"]["id"])
        role = _role()
        task = _task()
        navigation_service.link_task_to_role(role["id"], task["id"])
        navigation_service.link_action_to_task(task["id"], action["id"])

        navigation_service.delete_task(task["id"])

        assert _db.session.query(RoleTask).count() == 0
        assert _db.session.query(TaskAction).count() == 0
        assert navigation_service.get_role(role["id"])["name"] == "Office Manager"
        assert action_service.get_action(action["id"])["title"] == "Login to QuickBooks"

    def test_delete_role_keeps_tasks(self):
        role, task = _role(), _task()
        navigation_service.link_task_to_role(role["id"], task["id"])
        navigation_service.delete_role(role["id"])
        assert navigation_service.roles_for_task(task["id"])["total"] == 0


# ── End-to-end walk ───────────────────────────────────────────────────────────


def test_office_manager_reaches_login_through_pay_vendors(hierarchy):
    """Role → Task → Action walk returns the Action with the Task's notes."""
    group_id = hierarchy["practice_group"]["id"]
    login = _action(group_id, "Login to QuickBooks")
    record = _action(group_id, "Record Vendor Payment")

    role = _role("Office Manager")
    task = _task("Pay Vendors")
    navigation_service.link_task_to_role(role["id"], task["id"], display_order=1)
    navigation_service.bulk_link_actions_to_task(task["id"], [
        {"action_id": record["id"], "display_order": 2},
        {"action_id": login["id"], "display_order": 1, "notes": "must be signed in first"},
    ])

    tasks = navigation_service.tasks_for_role(role["id"])["data"]
    assert [row["task"]["name"] for row in tasks] == ["Pay Vendors"]

    steps = navigation_service.actions_for_task(tasks[0]["task_id"])["data"]
    assert steps[0]["action"]["title"] == "Login to QuickBooks"
    assert steps[0]["notes"] == "must be signed in first"
    assert steps[1]["action"]["title"] == "Record Vendor Payment"
