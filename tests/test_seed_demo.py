"""
Tests: demo seed script builds a connected data set through the services.
"""

import importlib

from techledger.services import link_service, navigation_service, sequence_service


def test_seed_demo_creates_walkable_graph():
    mod = importlib.import_module("scripts.seed_demo")
    ids = mod.seed_demo()

    tasks = navigation_service.tasks_for_role(ids["role_id"])["data"]
    assert [row["task"]["name"] for row in tasks] == ["Pay Vendors"]

    steps = navigation_service.actions_for_task(ids["task_id"])["data"]
    assert [row["action"]["title"] for row in steps] == [
        "Login to QuickBooks", "Open Vendor Center", "Record Vendor Payment",
    ]
    assert steps[0]["notes"] == "must be signed in first"

    sequence = sequence_service.get_sequence_with_actions(ids["sequence_id"])
    assert [s["order_number"] for s in sequence["actions"]] == [1, 2, 3]

    stats = link_service.usage_stats(ids["link_id"])
    assert stats["system_count"] == 1
    assert stats["task_count"] == 1
