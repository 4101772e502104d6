#!/usr/bin/env python3
"""
TechLedger — Demo Seed.

Builds a small, connected data set through the service layer:

    QuickBooks (System)
      └─ Finance (Department)
           └─ Accounts Payable (PracticeGroup)
                ├─ Login to QuickBooks      (Action)
                ├─ Open Vendor Center       (Action)
                └─ Record Vendor Payment    (Action)

    Office Manager (Role) → Pay Vendors (Task) → the three Actions in order
    "Weekly Vendor Run" (ActionSequence) pins the same three Actions 1..3
    "QuickBooks Help: Pay Bills" (Link) attached to the System and the Task

Usage:
    python scripts/seed_demo.py              # add to the current DB
    python scripts/seed_demo.py --reset      # drop + recreate tables first
"""

import argparse
import logging
import sys

sys.path.insert(0, ".")

from techledger import create_app
from techledger.models import db
from techledger.services import (
    action_service,
    hierarchy_service,
    link_service,
    navigation_service,
    sequence_service,
)

logger = logging.getLogger("seed_demo")

DEMO_OWNER = "demo-office-manager"


def seed_hierarchy():
    system = hierarchy_service.create_system(
        {"name": "QuickBooks", "description": "Accounting system"}, owner_id=DEMO_OWNER,
    )
    finance = hierarchy_service.create_department(system["id"], {"name": "Finance"})
    payables = hierarchy_service.create_practice_group(
        finance["id"], {"name": "Accounts Payable"},
    )
    return system, payables


def seed_actions(payables):
    titles = ["Login to QuickBooks", "Open Vendor Center", "Record Vendor Payment"]
    return [
        action_service.create_action({
            "practice_group_id": payables["id"],
            "title": title,
            "display_order": index,
        })
        for index, title in enumerate(titles)
    ]


def seed_navigation(actions):
    role = navigation_service.create_role({"name": "Office Manager"}, DEMO_OWNER)
    task = navigation_service.create_task({"name": "Pay Vendors"}, DEMO_OWNER)
    navigation_service.link_task_to_role(role["id"], task["id"], display_order=1)
    notes = ["must be signed in first", None, "attach the bill before saving"]
    navigation_service.bulk_link_actions_to_task(task["id"], [
        {"action_id": action["id"], "display_order": index + 1, "notes": note}
        for index, (action, note) in enumerate(zip(actions, notes))
    ])
    return role, task


def seed_sequence(payables, actions):
    sequence = sequence_service.create_sequence(
        payables["id"], {"name": "Weekly Vendor Run"},
    )
    for number, action in enumerate(actions, start=1):
        sequence_service.add_action(
            sequence["id"], {"action_id": action["id"], "order_number": number},
        )
    return sequence


def seed_links(system, task):
    link = link_service.create_link({
        "url": "https://quickbooks.intuit.com/learn-support/",
        "title": "QuickBooks Help: Pay Bills",
        "link_type": "support_article",
        "auth_required": "none",
    }, created_by=DEMO_OWNER)
    link_service.attach_link("system", system["id"], {"link_id": link["id"]})
    link_service.attach_link("task", task["id"], {
        "link_id": link["id"], "context_notes": "Step-by-step bill payment guide",
    })
    return link


def seed_demo() -> dict:
    """Create the demo data set and return the ids of its anchors."""
    system, payables = seed_hierarchy()
    actions = seed_actions(payables)
    role, task = seed_navigation(actions)
    sequence = seed_sequence(payables, actions)
    link = seed_links(system, task)
    return {
        "system_id": system["id"],
        "practice_group_id": payables["id"],
        "action_ids": [a["id"] for a in actions],
        "role_id": role["id"],
        "task_id": task["id"],
        "sequence_id": sequence["id"],
        "link_id": link["id"],
    }


def main():
    parser = argparse.ArgumentParser(description="Seed TechLedger demo data")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            logger.warning("Resetting database (drop_all + create_all)")
            db.drop_all()
            db.create_all()

        summary = seed_demo()
        logger.info("Demo data loaded: %s", summary)


if __name__ == "__main__":
    main()
