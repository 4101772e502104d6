"""
Action Blueprint — actions, their paths and screenshot reference rows.

Endpoints:
    GET    /api/v1/systems/<id>/actions           — actions attached to a system
    POST   /api/v1/systems/<id>/actions           — create under a system
    GET    /api/v1/practice-groups/<id>/actions   — actions of a practice group
    POST   /api/v1/practice-groups/<id>/actions   — create under a practice group
    POST   /api/v1/actions                        — create (parent id in body)
    GET    /api/v1/actions/<id>                   — detail
    PUT    /api/v1/actions/<id>                   — partial update
    DELETE /api/v1/actions/<id>                   — delete (cascades junctions)
    GET    /api/v1/actions/<id>/paths             — every route to this action
    GET    /api/v1/actions/<id>/screenshots       — screenshot reference rows
    POST   /api/v1/actions/<id>/screenshots       — add a reference row
    DELETE /api/v1/screenshots/<id>               — remove a reference row
"""

from flask import Blueprint

from techledger.blueprints import json_body, list_options
from techledger.services import action_service
from techledger.utils.errors import api_ok, api_page

action_bp = Blueprint("actions", __name__, url_prefix="/api/v1")


def _with_parent(column: str, parent_id: int) -> dict:
    data = json_body()
    if not isinstance(data, dict):
        return data
    return {**data, column: parent_id}


@action_bp.route("/systems/<int:system_id>/actions", methods=["GET"])
def list_system_actions(system_id):
    return api_page(action_service.list_actions("system", system_id, **list_options()))


@action_bp.route("/systems/<int:system_id>/actions", methods=["POST"])
def create_system_action(system_id):
    action = action_service.create_action(_with_parent("system_id", system_id))
    return api_ok(action, status=201)


@action_bp.route("/practice-groups/<int:practice_group_id>/actions", methods=["GET"])
def list_practice_group_actions(practice_group_id):
    return api_page(
        action_service.list_actions("practice_group", practice_group_id, **list_options())
    )


@action_bp.route("/practice-groups/<int:practice_group_id>/actions", methods=["POST"])
def create_practice_group_action(practice_group_id):
    action = action_service.create_action(_with_parent("practice_group_id", practice_group_id))
    return api_ok(action, status=201)


@action_bp.route("/actions", methods=["POST"])
def create_action():
    """Body: {system_id | practice_group_id, title, description?, steps?, ...}"""
    return api_ok(action_service.create_action(json_body()), status=201)


@action_bp.route("/actions/<int:action_id>", methods=["GET"])
def get_action(action_id):
    return api_ok(action_service.get_action(action_id))


@action_bp.route("/actions/<int:action_id>", methods=["PUT"])
def update_action(action_id):
    return api_ok(action_service.update_action(action_id, json_body()))


@action_bp.route("/actions/<int:action_id>", methods=["DELETE"])
def delete_action(action_id):
    action_service.delete_action(action_id)
    return api_ok(None, message="Action deleted")


@action_bp.route("/actions/<int:action_id>/paths", methods=["GET"])
def action_paths(action_id):
    return api_ok(action_service.get_action_memberships(action_id))


# ── Screenshot reference rows ────────────────────────────────────────────────


@action_bp.route("/actions/<int:action_id>/screenshots", methods=["GET"])
def list_screenshots(action_id):
    return api_ok(action_service.list_screenshot_refs(action_id))


@action_bp.route("/actions/<int:action_id>/screenshots", methods=["POST"])
def add_screenshot(action_id):
    """Body: {file_path, original_filename?}"""
    return api_ok(action_service.add_screenshot_ref(action_id, json_body()), status=201)


@action_bp.route("/screenshots/<int:screenshot_id>", methods=["DELETE"])
def delete_screenshot(screenshot_id):
    action_service.delete_screenshot_ref(screenshot_id)
    return api_ok(None, message="Screenshot reference deleted")
