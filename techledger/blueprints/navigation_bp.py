"""
Navigation Blueprint — Roles, Tasks and their ordered junctions.

Endpoints:
    GET    /api/v1/roles                                  — list (?owner_id=)
    POST   /api/v1/roles                                  — create (owner = X-User-Id)
    GET    /api/v1/roles/<id>                             — detail
    PUT    /api/v1/roles/<id>                             — partial update
    DELETE /api/v1/roles/<id>                             — delete
    GET    /api/v1/roles/<id>/tasks                       — tasks in role order
    POST   /api/v1/roles/<id>/tasks                       — link task (409 if linked)
    POST   /api/v1/roles/<id>/tasks/bulk                  — link many, all or nothing
    DELETE /api/v1/roles/<id>/tasks/<task_id>             — unlink
    PUT    /api/v1/roles/<id>/tasks/<task_id>/order       — reorder
    GET    /api/v1/tasks                                  — list (?owner_id=)
    POST   /api/v1/tasks                                  — create
    GET    /api/v1/tasks/<id>                             — detail
    PUT    /api/v1/tasks/<id>                             — partial update
    DELETE /api/v1/tasks/<id>                             — delete
    GET    /api/v1/tasks/<id>/roles                       — roles containing task
    GET    /api/v1/tasks/<id>/actions                     — actions in task order
    POST   /api/v1/tasks/<id>/actions                     — link action (409 if linked)
    POST   /api/v1/tasks/<id>/actions/bulk                — link many, all or nothing
    PUT    /api/v1/tasks/<id>/actions/<action_id>         — update order / notes
    DELETE /api/v1/tasks/<id>/actions/<action_id>         — unlink
    PUT    /api/v1/tasks/<id>/actions/<action_id>/order   — reorder
    GET    /api/v1/actions/<id>/tasks                     — tasks containing action

Layer contract:
    - No ORM calls here — all DB work delegated to navigation_service.
    - The owner of a new Role/Task is the authenticated subject.
"""

from flask import Blueprint, request

from techledger.auth import current_subject
from techledger.blueprints import json_body, list_options
from techledger.core.exceptions import ValidationError
from techledger.services import navigation_service
from techledger.utils.errors import api_ok, api_page

navigation_bp = Blueprint("navigation", __name__, url_prefix="/api/v1")


def _body() -> dict:
    data = json_body()
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _items() -> list:
    data = json_body()
    if isinstance(data, dict):
        return data.get("items")
    return data


# ── Roles ────────────────────────────────────────────────────────────────────


@navigation_bp.route("/roles", methods=["GET"])
def list_roles():
    owner_id = request.args.get("owner_id") or None
    return api_page(navigation_service.list_roles(owner_id, **list_options()))


@navigation_bp.route("/roles", methods=["POST"])
def create_role():
    """Body: {name, description?, display_order?}"""
    data = json_body()
    return api_ok(navigation_service.create_role(data, current_subject(data)), status=201)


@navigation_bp.route("/roles/<int:role_id>", methods=["GET"])
def get_role(role_id):
    return api_ok(navigation_service.get_role(role_id))


@navigation_bp.route("/roles/<int:role_id>", methods=["PUT"])
def update_role(role_id):
    return api_ok(navigation_service.update_role(role_id, json_body()))


@navigation_bp.route("/roles/<int:role_id>", methods=["DELETE"])
def delete_role(role_id):
    navigation_service.delete_role(role_id)
    return api_ok(None, message="Role deleted")


@navigation_bp.route("/roles/<int:role_id>/tasks", methods=["GET"])
def tasks_for_role(role_id):
    return api_page(navigation_service.tasks_for_role(role_id, **list_options()))


@navigation_bp.route("/roles/<int:role_id>/tasks", methods=["POST"])
def link_task(role_id):
    """Body: {task_id, display_order?}"""
    data = _body()
    link = navigation_service.link_task_to_role(
        role_id, data.get("task_id"), display_order=data.get("display_order"),
    )
    return api_ok(link, status=201, message="Task linked to role")


@navigation_bp.route("/roles/<int:role_id>/tasks/bulk", methods=["POST"])
def bulk_link_tasks(role_id):
    """Body: {items: [{task_id, display_order?}, ...]}"""
    links = navigation_service.bulk_link_tasks_to_role(role_id, _items())
    return api_ok(links, status=201, message=f"{len(links)} tasks linked to role")


@navigation_bp.route("/roles/<int:role_id>/tasks/<int:task_id>", methods=["DELETE"])
def unlink_task(role_id, task_id):
    navigation_service.unlink_task_from_role(role_id, task_id)
    return api_ok(None, message="Task unlinked from role")


@navigation_bp.route("/roles/<int:role_id>/tasks/<int:task_id>/order", methods=["PUT"])
def reorder_task(role_id, task_id):
    """Body: {display_order}"""
    data = _body()
    return api_ok(
        navigation_service.reorder_task_in_role(role_id, task_id, data.get("display_order"))
    )


# ── Tasks ────────────────────────────────────────────────────────────────────


@navigation_bp.route("/tasks", methods=["GET"])
def list_tasks():
    owner_id = request.args.get("owner_id") or None
    return api_page(navigation_service.list_tasks(owner_id, **list_options()))


@navigation_bp.route("/tasks", methods=["POST"])
def create_task():
    data = json_body()
    return api_ok(navigation_service.create_task(data, current_subject(data)), status=201)


@navigation_bp.route("/tasks/<int:task_id>", methods=["GET"])
def get_task(task_id):
    return api_ok(navigation_service.get_task(task_id))


@navigation_bp.route("/tasks/<int:task_id>", methods=["PUT"])
def update_task(task_id):
    return api_ok(navigation_service.update_task(task_id, json_body()))


@navigation_bp.route("/tasks/<int:task_id>", methods=["DELETE"])
def delete_task(task_id):
    navigation_service.delete_task(task_id)
    return api_ok(None, message="Task deleted")


@navigation_bp.route("/tasks/<int:task_id>/roles", methods=["GET"])
def roles_for_task(task_id):
    return api_page(navigation_service.roles_for_task(task_id, **list_options()))


@navigation_bp.route("/tasks/<int:task_id>/actions", methods=["GET"])
def actions_for_task(task_id):
    return api_page(navigation_service.actions_for_task(task_id, **list_options()))


@navigation_bp.route("/tasks/<int:task_id>/actions", methods=["POST"])
def link_action(task_id):
    """Body: {action_id, display_order?, notes?}"""
    data = _body()
    link = navigation_service.link_action_to_task(
        task_id,
        data.get("action_id"),
        display_order=data.get("display_order"),
        notes=data.get("notes"),
    )
    return api_ok(link, status=201, message="Action linked to task")


@navigation_bp.route("/tasks/<int:task_id>/actions/bulk", methods=["POST"])
def bulk_link_actions(task_id):
    """Body: {items: [{action_id, display_order?, notes?}, ...]}"""
    links = navigation_service.bulk_link_actions_to_task(task_id, _items())
    return api_ok(links, status=201, message=f"{len(links)} actions linked to task")


@navigation_bp.route("/tasks/<int:task_id>/actions/<int:action_id>", methods=["PUT"])
def update_task_action(task_id, action_id):
    """Body: {display_order?, notes?}"""
    return api_ok(navigation_service.update_task_action(task_id, action_id, json_body()))


@navigation_bp.route("/tasks/<int:task_id>/actions/<int:action_id>", methods=["DELETE"])
def unlink_action(task_id, action_id):
    navigation_service.unlink_action_from_task(task_id, action_id)
    return api_ok(None, message="Action unlinked from task")


@navigation_bp.route("/tasks/<int:task_id>/actions/<int:action_id>/order", methods=["PUT"])
def reorder_action(task_id, action_id):
    """Body: {display_order}"""
    data = _body()
    return api_ok(
        navigation_service.reorder_action_in_task(task_id, action_id, data.get("display_order"))
    )


@navigation_bp.route("/actions/<int:action_id>/tasks", methods=["GET"])
def tasks_for_action(action_id):
    return api_page(navigation_service.tasks_for_action(action_id, **list_options()))
