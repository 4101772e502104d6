"""
Hierarchy Service — System → Department → PracticeGroup.

Business context:
    The strict organisational tree is one of the routes to an Action (the
    navigation graph is the other).  Each node has a single parent, a
    caller-managed ``display_order`` among its siblings, and cannot be moved:
    updates never change the parent.  Moving a node is delete + recreate.

    Deleting any node cascades downward through all descendant levels,
    their Actions and Sequences, and every junction row referencing them.

Layer contract:
    - Functions return serialised dicts (``to_dict()``), never ORM objects.
    - db.session.commit() is called only in this layer.
    - Missing ids raise NotFoundError; bad payloads raise ValidationError.
"""

import logging

from sqlalchemy import func, select

from techledger.models import db
from techledger.models.action import Action
from techledger.models.hierarchy import Department, PracticeGroup, System
from techledger.services.helpers.listing import clamp_paging, paginate, resolve_ordering
from techledger.services.helpers.lookups import get_or_raise
from techledger.services.helpers.transactions import commit_or_raise
from techledger.services.helpers.validators import (
    MAX_DESCRIPTION_LENGTH,
    FieldChecker,
)

logger = logging.getLogger(__name__)

_NO_REPARENT = "Parent cannot be changed; delete and recreate the node instead"


def _sortable(model) -> dict:
    return {
        "display_order": model.display_order,
        "name": model.name,
        "created_at": model.created_at,
        "updated_at": model.updated_at,
        "id": model.id,
    }


def _check_node(data: dict | None, *, partial: bool, parent_fields=()) -> FieldChecker:
    checker = FieldChecker(data, partial=partial)
    checker.text("name", required=True)
    checker.text("description", max_length=MAX_DESCRIPTION_LENGTH)
    checker.order("display_order")
    if partial:
        checker.forbid(*parent_fields, reason=_NO_REPARENT)
    return checker


def _apply(obj, cleaned: dict) -> None:
    for key, value in cleaned.items():
        setattr(obj, key, value)


def _list_children(model, parent_filter, *, limit, offset, order_by, order_direction) -> dict:
    limit, offset = clamp_paging(limit, offset)
    order = resolve_ordering(_sortable(model), order_by, order_direction, "display_order")
    stmt = select(model).where(parent_filter)
    return paginate(stmt, limit=limit, offset=offset, order_clauses=(order, model.id.asc()))


# ═════════════════════════════════════════════════════════════════════════════
# Systems
# ═════════════════════════════════════════════════════════════════════════════


def create_system(data: dict, owner_id: str | None = None) -> dict:
    """Create a root System node.

    Args:
        data: {name (required), description?, display_order?}
        owner_id: Opaque subject id of the caller (may be None).
    """
    cleaned = _check_node(data, partial=False).validated("Invalid system data")
    system = System(owner_id=owner_id, **cleaned)
    db.session.add(system)
    commit_or_raise("System")
    logger.info("System created", extra={"system_id": system.id})
    return system.to_dict()


def get_system(system_id: int) -> dict:
    return get_or_raise(System, system_id).to_dict()


def list_systems(
    owner_id: str | None = None,
    *,
    limit=None,
    offset=None,
    order_by=None,
    order_direction=None,
) -> dict:
    """List Systems, optionally restricted to one owner."""
    parent_filter = System.owner_id == owner_id if owner_id is not None else True
    return _list_children(
        System, parent_filter,
        limit=limit, offset=offset, order_by=order_by, order_direction=order_direction,
    )


def update_system(system_id: int, data: dict) -> dict:
    system = get_or_raise(System, system_id)
    cleaned = _check_node(data, partial=True, parent_fields=("owner_id",)).validated(
        "Invalid update data"
    )
    _apply(system, cleaned)
    commit_or_raise("System")
    logger.info("System updated", extra={"system_id": system_id, "fields": sorted(cleaned)})
    return system.to_dict()


def delete_system(system_id: int) -> None:
    """Delete a System and everything beneath it."""
    system = get_or_raise(System, system_id)
    db.session.delete(system)
    commit_or_raise("System")
    logger.info("System deleted", extra={"system_id": system_id})


def get_system_tree(system_id: int) -> dict:
    """Return System → Departments → PracticeGroups, ordered by display_order.

    Each practice group carries the number of Actions attached to it; a
    system also reports its directly attached Actions.  Two queries for
    the nodes plus one grouped count query (no N+1).
    """
    system = get_or_raise(System, system_id)

    departments = db.session.execute(
        select(Department)
        .where(Department.system_id == system_id)
        .order_by(Department.display_order, Department.id)
    ).scalars().all()

    dept_ids = [d.id for d in departments]
    groups: list[PracticeGroup] = []
    if dept_ids:
        groups = db.session.execute(
            select(PracticeGroup)
            .where(PracticeGroup.department_id.in_(dept_ids))
            .order_by(PracticeGroup.display_order, PracticeGroup.id)
        ).scalars().all()

    action_counts: dict[int, int] = {}
    if groups:
        rows = db.session.execute(
            select(Action.practice_group_id, func.count(Action.id))
            .where(Action.practice_group_id.in_([g.id for g in groups]))
            .group_by(Action.practice_group_id)
        ).all()
        action_counts = {pg_id: count for pg_id, count in rows}

    direct_actions = db.session.execute(
        select(func.count(Action.id)).where(Action.system_id == system_id)
    ).scalar_one()

    groups_by_dept: dict[int, list[dict]] = {d.id: [] for d in departments}
    for group in groups:
        node = group.to_dict()
        node["action_count"] = action_counts.get(group.id, 0)
        groups_by_dept[group.department_id].append(node)

    tree = system.to_dict()
    tree["direct_action_count"] = direct_actions
    tree["departments"] = []
    for dept in departments:
        node = dept.to_dict()
        node["practice_groups"] = groups_by_dept[dept.id]
        tree["departments"].append(node)
    return tree


# ═════════════════════════════════════════════════════════════════════════════
# Departments
# ═════════════════════════════════════════════════════════════════════════════


def create_department(system_id: int, data: dict) -> dict:
    """Create a Department under an existing System."""
    get_or_raise(System, system_id)
    cleaned = _check_node(data, partial=False).validated("Invalid department data")
    department = Department(system_id=system_id, **cleaned)
    db.session.add(department)
    commit_or_raise("Department")
    logger.info(
        "Department created",
        extra={"system_id": system_id, "department_id": department.id},
    )
    return department.to_dict()


def get_department(department_id: int) -> dict:
    return get_or_raise(Department, department_id).to_dict()


def list_departments(system_id: int, *, limit=None, offset=None, order_by=None, order_direction=None) -> dict:
    get_or_raise(System, system_id)
    return _list_children(
        Department, Department.system_id == system_id,
        limit=limit, offset=offset, order_by=order_by, order_direction=order_direction,
    )


def update_department(department_id: int, data: dict) -> dict:
    department = get_or_raise(Department, department_id)
    cleaned = _check_node(data, partial=True, parent_fields=("system_id",)).validated(
        "Invalid update data"
    )
    _apply(department, cleaned)
    commit_or_raise("Department")
    logger.info("Department updated", extra={"department_id": department_id})
    return department.to_dict()


def delete_department(department_id: int) -> None:
    department = get_or_raise(Department, department_id)
    db.session.delete(department)
    commit_or_raise("Department")
    logger.info("Department deleted", extra={"department_id": department_id})


# ═════════════════════════════════════════════════════════════════════════════
# Practice groups
# ═════════════════════════════════════════════════════════════════════════════


def create_practice_group(department_id: int, data: dict) -> dict:
    """Create a PracticeGroup under an existing Department."""
    get_or_raise(Department, department_id)
    cleaned = _check_node(data, partial=False).validated("Invalid practice group data")
    group = PracticeGroup(department_id=department_id, **cleaned)
    db.session.add(group)
    commit_or_raise("PracticeGroup")
    logger.info(
        "Practice group created",
        extra={"department_id": department_id, "practice_group_id": group.id},
    )
    return group.to_dict()


def get_practice_group(practice_group_id: int) -> dict:
    return get_or_raise(PracticeGroup, practice_group_id).to_dict()


def list_practice_groups(
    department_id: int, *, limit=None, offset=None, order_by=None, order_direction=None,
) -> dict:
    get_or_raise(Department, department_id)
    return _list_children(
        PracticeGroup, PracticeGroup.department_id == department_id,
        limit=limit, offset=offset, order_by=order_by, order_direction=order_direction,
    )


def update_practice_group(practice_group_id: int, data: dict) -> dict:
    group = get_or_raise(PracticeGroup, practice_group_id)
    cleaned = _check_node(data, partial=True, parent_fields=("department_id",)).validated(
        "Invalid update data"
    )
    _apply(group, cleaned)
    commit_or_raise("PracticeGroup")
    logger.info("Practice group updated", extra={"practice_group_id": practice_group_id})
    return group.to_dict()


def delete_practice_group(practice_group_id: int) -> None:
    group = get_or_raise(PracticeGroup, practice_group_id)
    db.session.delete(group)
    commit_or_raise("PracticeGroup")
    logger.info("Practice group deleted", extra={"practice_group_id": practice_group_id})
