"""
Links Blueprint — canonical links, attachments and maintenance views.

Endpoints:
    GET    /api/v1/links                                  — list (?status=&link_type=&created_by=)
    POST   /api/v1/links                                  — create (created_by = X-User-Id)
    GET    /api/v1/links/<id>                             — detail (any status)
    PUT    /api/v1/links/<id>                             — partial update / status change
    DELETE /api/v1/links/<id>                             — delete (all attachments go too)
    POST   /api/v1/links/<id>/verify                      — stamp last_verified_at
    GET    /api/v1/links/stats/usage                      — usage counts (?link_id=)
    GET    /api/v1/links/maintenance/orphaned             — links attached nowhere
    GET    /api/v1/links/maintenance/needs-verification   — stale active links

    For <kind> in systems | actions | roles | tasks:
    GET    /api/v1/<kind>/<id>/links                      — active links, ordered
    POST   /api/v1/<kind>/<id>/links                      — attach (upsert)
    DELETE /api/v1/<kind>/<id>/links/<link_id>            — detach
    POST   /api/v1/<kind>/<id>/links/bulk                 — attach many, all or nothing
    PUT    /api/v1/<kind>/<id>/links/reorder              — reorder many, all or nothing
"""

from flask import Blueprint, request

from techledger.auth import current_subject
from techledger.blueprints import json_body, list_options
from techledger.core.exceptions import ValidationError
from techledger.services import link_service
from techledger.utils.errors import api_ok, api_page

links_bp = Blueprint("links", __name__, url_prefix="/api/v1")

# URL collection → service parent kind
_COLLECTIONS = {
    "systems": "system",
    "actions": "action",
    "roles": "role",
    "tasks": "task",
}
_PARENT = "/<any(systems, actions, roles, tasks):collection>/<int:parent_id>/links"


def _query_id(name: str):
    """Optional positive-integer query param; malformed values are rejected."""
    raw = request.args.get(name)
    if raw is None:
        return None
    if not (raw.isascii() and raw.isdigit()) or int(raw) < 1:
        raise ValidationError(
            "Invalid query parameter", details={name: f"{name} must be a positive integer"},
        )
    return int(raw)


def _items() -> list:
    data = json_body()
    if isinstance(data, dict):
        return data.get("items")
    return data


# ── Links ────────────────────────────────────────────────────────────────────


@links_bp.route("/links", methods=["GET"])
def list_links():
    return api_page(link_service.list_links(
        status=request.args.get("status") or None,
        link_type=request.args.get("link_type") or None,
        created_by=request.args.get("created_by") or None,
        **list_options(),
    ))


@links_bp.route("/links", methods=["POST"])
def create_link():
    """Body: {url, title, description?, link_type?, auth_required?, ...}"""
    data = json_body()
    link = link_service.create_link(data, created_by=current_subject(data, field="created_by"))
    return api_ok(link, status=201)


@links_bp.route("/links/<int:link_id>", methods=["GET"])
def get_link(link_id):
    return api_ok(link_service.get_link(link_id))


@links_bp.route("/links/<int:link_id>", methods=["PUT"])
def update_link(link_id):
    return api_ok(link_service.update_link(link_id, json_body()))


@links_bp.route("/links/<int:link_id>", methods=["DELETE"])
def delete_link(link_id):
    link_service.delete_link(link_id)
    return api_ok(None, message="Link deleted")


@links_bp.route("/links/<int:link_id>/verify", methods=["POST"])
def verify_link(link_id):
    return api_ok(link_service.verify_link(link_id), message="Link verified")


# ── Maintenance ──────────────────────────────────────────────────────────────


@links_bp.route("/links/stats/usage", methods=["GET"])
def usage_stats():
    link_id = _query_id("link_id")
    return api_ok(link_service.usage_stats(link_id))


@links_bp.route("/links/maintenance/orphaned", methods=["GET"])
def orphaned_links():
    return api_ok(link_service.orphaned_links())


@links_bp.route("/links/maintenance/needs-verification", methods=["GET"])
def links_needing_verification():
    return api_ok(link_service.links_needing_verification())


# ── Attachments ──────────────────────────────────────────────────────────────


@links_bp.route(_PARENT, methods=["GET"])
def links_for(collection, parent_id):
    return api_ok(link_service.links_for(_COLLECTIONS[collection], parent_id))


@links_bp.route(_PARENT, methods=["POST"])
def attach_link(collection, parent_id):
    """Body: {link_id, display_order?, context_notes?}

    201 when a new attachment is created, 200 when an existing one is updated.
    """
    association, created = link_service.attach_link(
        _COLLECTIONS[collection], parent_id, json_body(),
    )
    if created:
        return api_ok(association, status=201, message="Link attached")
    return api_ok(association, message="Link attachment updated")


@links_bp.route(_PARENT + "/<int:link_id>", methods=["DELETE"])
def detach_link(collection, parent_id, link_id):
    link_service.detach_link(_COLLECTIONS[collection], parent_id, link_id)
    return api_ok(None, message="Link detached")


@links_bp.route(_PARENT + "/bulk", methods=["POST"])
def bulk_attach(collection, parent_id):
    """Body: {items: [{link_id, display_order?, context_notes?}, ...]}"""
    rows = link_service.bulk_attach(_COLLECTIONS[collection], parent_id, _items())
    return api_ok(rows, message=f"{len(rows)} links attached")


@links_bp.route(_PARENT + "/reorder", methods=["PUT"])
def reorder_links(collection, parent_id):
    """Body: {items: [{link_id, display_order}, ...]}"""
    rows = link_service.reorder_all(_COLLECTIONS[collection], parent_id, _items())
    return api_ok(rows, message=f"{len(rows)} links reordered")
