"""
Sequence Blueprint — authored workflows and their ordered steps.

Endpoints:
    GET    /api/v1/practice-groups/<id>/sequences   — list sequences
    POST   /api/v1/practice-groups/<id>/sequences   — create sequence
    GET    /api/v1/sequences/<id>                   — sequence + ordered actions
    PUT    /api/v1/sequences/<id>                   — partial update
    DELETE /api/v1/sequences/<id>                   — delete (steps go too)
    GET    /api/v1/sequences/<id>/actions           — ordered steps only
    POST   /api/v1/sequences/<id>/actions           — add step (409 on collision)
    PUT    /api/v1/sequence-actions/<id>            — update order_number / notes
    PUT    /api/v1/sequence-actions/<id>/order      — move step
    DELETE /api/v1/sequence-actions/<id>            — remove step
"""

from flask import Blueprint

from techledger.blueprints import json_body, list_options
from techledger.services import sequence_service
from techledger.utils.errors import api_ok, api_page

sequence_bp = Blueprint("sequences", __name__, url_prefix="/api/v1")


@sequence_bp.route("/practice-groups/<int:practice_group_id>/sequences", methods=["GET"])
def list_sequences(practice_group_id):
    return api_page(sequence_service.list_sequences(practice_group_id, **list_options()))


@sequence_bp.route("/practice-groups/<int:practice_group_id>/sequences", methods=["POST"])
def create_sequence(practice_group_id):
    """Body: {name, description?}"""
    return api_ok(sequence_service.create_sequence(practice_group_id, json_body()), status=201)


@sequence_bp.route("/sequences/<int:sequence_id>", methods=["GET"])
def get_sequence(sequence_id):
    return api_ok(sequence_service.get_sequence_with_actions(sequence_id))


@sequence_bp.route("/sequences/<int:sequence_id>", methods=["PUT"])
def update_sequence(sequence_id):
    return api_ok(sequence_service.update_sequence(sequence_id, json_body()))


@sequence_bp.route("/sequences/<int:sequence_id>", methods=["DELETE"])
def delete_sequence(sequence_id):
    sequence_service.delete_sequence(sequence_id)
    return api_ok(None, message="Sequence deleted")


@sequence_bp.route("/sequences/<int:sequence_id>/actions", methods=["GET"])
def sequence_actions(sequence_id):
    return api_ok(sequence_service.get_sequence_with_actions(sequence_id)["actions"])


@sequence_bp.route("/sequences/<int:sequence_id>/actions", methods=["POST"])
def add_sequence_action(sequence_id):
    """Body: {action_id, order_number, notes?}"""
    return api_ok(sequence_service.add_action(sequence_id, json_body()), status=201)


@sequence_bp.route("/sequence-actions/<int:sequence_action_id>", methods=["PUT"])
def update_sequence_action(sequence_action_id):
    return api_ok(sequence_service.update_sequence_action(sequence_action_id, json_body()))


@sequence_bp.route("/sequence-actions/<int:sequence_action_id>/order", methods=["PUT"])
def reorder_sequence_action(sequence_action_id):
    """Body: {order_number}"""
    data = json_body() or {}
    order_number = data.get("order_number") if isinstance(data, dict) else None
    return api_ok(sequence_service.reorder_sequence_action(sequence_action_id, order_number))


@sequence_bp.route("/sequence-actions/<int:sequence_action_id>", methods=["DELETE"])
def remove_sequence_action(sequence_action_id):
    sequence_service.remove_sequence_action(sequence_action_id)
    return api_ok(None, message="Action removed from sequence")
