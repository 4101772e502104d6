"""
Hierarchy Blueprint — System → Department → PracticeGroup.

Endpoints:
    GET    /api/v1/systems                              — list (?owner_id=)
    POST   /api/v1/systems                              — create
    GET    /api/v1/systems/<id>                         — detail
    PUT    /api/v1/systems/<id>                         — partial update
    DELETE /api/v1/systems/<id>                         — delete (cascades)
    GET    /api/v1/systems/<id>/tree                    — nested tree view
    GET    /api/v1/systems/<id>/departments             — list children
    POST   /api/v1/systems/<id>/departments             — create child
    GET    /api/v1/departments/<id>                     — detail
    PUT    /api/v1/departments/<id>                     — partial update
    DELETE /api/v1/departments/<id>                     — delete (cascades)
    GET    /api/v1/departments/<id>/practice-groups     — list children
    POST   /api/v1/departments/<id>/practice-groups     — create child
    GET    /api/v1/practice-groups/<id>                 — detail
    PUT    /api/v1/practice-groups/<id>                 — partial update
    DELETE /api/v1/practice-groups/<id>                 — delete (cascades)

Layer contract:
    - No ORM calls here — all DB work delegated to hierarchy_service.
    - No db.session.commit() here.
"""

from flask import Blueprint, request

from techledger.auth import current_subject
from techledger.blueprints import json_body, list_options
from techledger.services import hierarchy_service
from techledger.utils.errors import api_ok, api_page

hierarchy_bp = Blueprint("hierarchy", __name__, url_prefix="/api/v1")


# ── Systems ──────────────────────────────────────────────────────────────────


@hierarchy_bp.route("/systems", methods=["GET"])
def list_systems():
    owner_id = request.args.get("owner_id") or None
    return api_page(hierarchy_service.list_systems(owner_id, **list_options()))


@hierarchy_bp.route("/systems", methods=["POST"])
def create_system():
    """Body: {name, description?, display_order?, owner_id?}"""
    data = json_body()
    system = hierarchy_service.create_system(data, owner_id=current_subject(data))
    return api_ok(system, status=201)


@hierarchy_bp.route("/systems/<int:system_id>", methods=["GET"])
def get_system(system_id):
    return api_ok(hierarchy_service.get_system(system_id))


@hierarchy_bp.route("/systems/<int:system_id>", methods=["PUT"])
def update_system(system_id):
    return api_ok(hierarchy_service.update_system(system_id, json_body()))


@hierarchy_bp.route("/systems/<int:system_id>", methods=["DELETE"])
def delete_system(system_id):
    hierarchy_service.delete_system(system_id)
    return api_ok(None, message="System deleted")


@hierarchy_bp.route("/systems/<int:system_id>/tree", methods=["GET"])
def system_tree(system_id):
    return api_ok(hierarchy_service.get_system_tree(system_id))


# ── Departments ──────────────────────────────────────────────────────────────


@hierarchy_bp.route("/systems/<int:system_id>/departments", methods=["GET"])
def list_departments(system_id):
    return api_page(hierarchy_service.list_departments(system_id, **list_options()))


@hierarchy_bp.route("/systems/<int:system_id>/departments", methods=["POST"])
def create_department(system_id):
    return api_ok(hierarchy_service.create_department(system_id, json_body()), status=201)


@hierarchy_bp.route("/departments/<int:department_id>", methods=["GET"])
def get_department(department_id):
    return api_ok(hierarchy_service.get_department(department_id))


@hierarchy_bp.route("/departments/<int:department_id>", methods=["PUT"])
def update_department(department_id):
    return api_ok(hierarchy_service.update_department(department_id, json_body()))


@hierarchy_bp.route("/departments/<int:department_id>", methods=["DELETE"])
def delete_department(department_id):
    hierarchy_service.delete_department(department_id)
    return api_ok(None, message="Department deleted")


# ── Practice groups ──────────────────────────────────────────────────────────


@hierarchy_bp.route("/departments/<int:department_id>/practice-groups", methods=["GET"])
def list_practice_groups(department_id):
    return api_page(hierarchy_service.list_practice_groups(department_id, **list_options()))


@hierarchy_bp.route("/departments/<int:department_id>/practice-groups", methods=["POST"])
def create_practice_group(department_id):
    return api_ok(
        hierarchy_service.create_practice_group(department_id, json_body()), status=201,
    )


@hierarchy_bp.route("/practice-groups/<int:practice_group_id>", methods=["GET"])
def get_practice_group(practice_group_id):
    return api_ok(hierarchy_service.get_practice_group(practice_group_id))


@hierarchy_bp.route("/practice-groups/<int:practice_group_id>", methods=["PUT"])
def update_practice_group(practice_group_id):
    return api_ok(hierarchy_service.update_practice_group(practice_group_id, json_body()))


@hierarchy_bp.route("/practice-groups/<int:practice_group_id>", methods=["DELETE"])
def delete_practice_group(practice_group_id):
    hierarchy_service.delete_practice_group(practice_group_id)
    return api_ok(None, message="Practice group deleted")
