"""
Tests: organisational hierarchy (System → Department → PracticeGroup).

Covers:
    - create/get/update/delete at every level
    - parent existence checks and no re-parenting on update
    - list paging, ordering whitelist, owner filter
    - tree read with per-group action counts
    - cascade: deleting a System removes every descendant and junction row
"""

import pytest

from techledger.core.exceptions import NotFoundError, ValidationError
from techledger.models import db as _db
from techledger.models.action import Action
from techledger.models.hierarchy import Department, PracticeGroup
from techledger.models.links import SystemLink
from techledger.models.navigation import TaskAction
from techledger.models.sequence import ActionSequence, SequenceAction
from techledger.services import (
    action_service,
    hierarchy_service,
    link_service,
    navigation_service,
    sequence_service,
)


def _count(model) -> int:
    return _db.session.query(model).count()


# ── Systems ───────────────────────────────────────────────────────────────────


class TestSystems:
    def test_create_system_defaults(self):
        system = hierarchy_service.create_system({"name": "  Salesforce  "}, owner_id="u-1")
        assert system["id"] > 0
        assert system["name"] == "Salesforce"
        assert system["owner_id"] == "u-1"
        assert system["display_order"] == 0
        assert system["created_at"] is not None

    def test_create_system_requires_name(self):
        with pytest.raises(ValidationError) as exc:
            hierarchy_service.create_system({"name": "   "})
        assert "name" in exc.value.details

    def test_create_system_rejects_negative_order(self):
        with pytest.raises(ValidationError) as exc:
            hierarchy_service.create_system({"name": "X", "display_order": -1})
        assert "display_order" in exc.value.details

    def test_get_missing_system_raises_not_found(self):
        with pytest.raises(NotFoundError):
            hierarchy_service.get_system(9999)

    def test_update_system_partial(self):
        system = hierarchy_service.create_system({"name": "Old", "description": "keep"})
        updated = hierarchy_service.update_system(system["id"], {"name": "New"})
        assert updated["name"] == "New"
        assert updated["description"] == "keep"

    def test_update_system_empty_body_rejected(self):
        system = hierarchy_service.create_system({"name": "S"})
        with pytest.raises(ValidationError):
            hierarchy_service.update_system(system["id"], {})

    def test_update_system_cannot_change_owner(self):
        system = hierarchy_service.create_system({"name": "S"}, owner_id="a")
        with pytest.raises(ValidationError) as exc:
            hierarchy_service.update_system(system["id"], {"owner_id": "b"})
        assert "owner_id" in exc.value.details

    def test_list_systems_filters_by_owner(self):
        hierarchy_service.create_system({"name": "Mine"}, owner_id="me")
        hierarchy_service.create_system({"name": "Theirs"}, owner_id="them")
        page = hierarchy_service.list_systems("me")
        assert page["total"] == 1
        assert page["data"][0]["name"] == "Mine"

    def test_list_systems_paging_and_total(self):
        for i in range(5):
            hierarchy_service.create_system({"name": f"S{i}", "display_order": i})
        page = hierarchy_service.list_systems(limit=2, offset=2)
        assert page["total"] == 5
        assert page["limit"] == 2
        assert page["offset"] == 2
        assert [s["name"] for s in page["data"]] == ["S2", "S3"]

    def test_list_systems_limit_is_clamped(self):
        hierarchy_service.create_system({"name": "S"})
        page = hierarchy_service.list_systems(limit=100000, offset=-3)
        assert page["limit"] == 100
        assert page["offset"] == 0

    def test_list_systems_order_by_name_desc(self):
        for name in ("Alpha", "Charlie", "Bravo"):
            hierarchy_service.create_system({"name": name})
        page = hierarchy_service.list_systems(order_by="name", order_direction="desc")
        assert [s["name"] for s in page["data"]] == ["Charlie", "Bravo", "Alpha"]

    def test_list_systems_unknown_order_column_rejected(self):
        with pytest.raises(ValidationError):
            hierarchy_service.list_systems(order_by="name; DROP TABLE systems")

    def test_display_order_ties_are_allowed(self):
        first = hierarchy_service.create_system({"name": "A", "display_order": 1})
        second = hierarchy_service.create_system({"name": "B", "display_order": 1})
        page = hierarchy_service.list_systems()
        assert [s["id"] for s in page["data"]] == [first["id"], second["id"]]


# ── Departments / practice groups ─────────────────────────────────────────────


class TestDepartmentsAndGroups:
    def test_create_department_under_missing_system(self):
        with pytest.raises(NotFoundError):
            hierarchy_service.create_department(4242, {"name": "Sales"})

    def test_create_practice_group_under_missing_department(self):
        with pytest.raises(NotFoundError):
            hierarchy_service.create_practice_group(4242, {"name": "AP"})

    def test_department_cannot_be_reparented(self, hierarchy):
        other = hierarchy_service.create_system({"name": "Other"})
        with pytest.raises(ValidationError) as exc:
            hierarchy_service.update_department(
                hierarchy["department"]["id"], {"system_id": other["id"]},
            )
        assert "system_id" in exc.value.details

    def test_practice_group_cannot_be_reparented(self, hierarchy):
        with pytest.raises(ValidationError):
            hierarchy_service.update_practice_group(
                hierarchy["practice_group"]["id"], {"department_id": 1},
            )

    def test_list_departments_sorted_by_display_order(self, hierarchy):
        system_id = hierarchy["system"]["id"]
        hierarchy_service.create_department(system_id, {"name": "Sales", "display_order": 5})
        hierarchy_service.create_department(system_id, {"name": "Ops", "display_order": 1})
        names = [d["name"] for d in hierarchy_service.list_departments(system_id)["data"]]
        assert names == ["Finance", "Ops", "Sales"]

    def test_list_practice_groups_of_missing_department(self):
        with pytest.raises(NotFoundError):
            hierarchy_service.list_practice_groups(31337)

    def test_delete_department_removes_groups(self, hierarchy):
        hierarchy_service.delete_department(hierarchy["department"]["id"])
        assert _count(Department) == 0
        assert _count(PracticeGroup) == 0


# ── Tree ──────────────────────────────────────────────────────────────────────


class TestSystemTree:
    def test_tree_nests_levels_with_action_counts(self, hierarchy):
        system_id = hierarchy["system"]["id"]
        group_id = hierarchy["practice_group"]["id"]
        action_service.create_action({"practice_group_id": group_id, "title": "A1"})
        action_service.create_action({"practice_group_id": group_id, "title": "A2"})
        action_service.create_action({"system_id": system_id, "title": "Global"})

        tree = hierarchy_service.get_system_tree(system_id)
        assert tree["name"] == "QuickBooks"
        assert tree["direct_action_count"] == 1
        assert len(tree["departments"]) == 1
        groups = tree["departments"][0]["practice_groups"]
        assert groups[0]["name"] == "Accounts Payable"
        assert groups[0]["action_count"] == 2

    def test_tree_of_empty_system(self):
        system = hierarchy_service.create_system({"name": "Empty"})
        tree = hierarchy_service.get_system_tree(system["id"])
        assert tree["departments"] == []
        assert tree["direct_action_count"] == 0


# ── Cascade ───────────────────────────────────────────────────────────────────


class TestSystemCascade:
    def test_delete_system_removes_everything_beneath(self, hierarchy):
        system_id = hierarchy["system"]["id"]
        group_id = hierarchy["practice_group"]["id"]
        action = action_service.create_action({"practice_group_id": group_id, "title": "Pay"})
        direct = action_service.create_action({"system_id": system_id, "title": "Login"})

        sequence = sequence_service.create_sequence(group_id, {"name": "Run"})
        sequence_service.add_action(sequence["id"], {"action_id": action["id"], "order_number": 1})

        task = navigation_service.create_task({"name": "Pay Vendors"}, "u-1")
        navigation_service.link_action_to_task(task["id"], action["id"])
        navigation_service.link_action_to_task(task["id"], direct["id"])

        link = link_service.create_link({"url": "https://help.example.com", "title": "Help"})
        link_service.attach_link("system", system_id, {"link_id": link["id"]})

        hierarchy_service.delete_system(system_id)

        assert _count(Department) == 0
        assert _count(PracticeGroup) == 0
        assert _count(Action) == 0
        assert _count(ActionSequence) == 0
        assert _count(SequenceAction) == 0
        assert _count(TaskAction) == 0
        assert _count(SystemLink) == 0
        # Tasks and links are not part of the hierarchy and survive
        assert navigation_service.get_task(task["id"])["name"] == "Pay Vendors"
        assert link_service.get_link(link["id"])["title"] == "Help"
