# Overview: Flask API routes for item operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from retailhub.decorators import require_auth, require_roles
from retailhub.errors import ValidationError
from retailhub.models import ROLE_ADMIN, ROLE_MANAGER
from retailhub.services import cascade_service, inventory_service, item_service
from retailhub.validation import as_batch, coerce_int, parse_stock_lines


items_bp = Blueprint("items", __name__, url_prefix="/api/item")


@items_bp.post("")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def create_items():
    records, was_list = as_batch(request.get_json(silent=True))
    items = item_service.create_items(records)
    if was_list:
        return jsonify([item.to_dict() for item in items]), 201
    return jsonify(items[0].to_dict()), 201


@items_bp.get("")
@require_auth
def list_items():
    category_id = request.args.get("category_id")
    if category_id is not None:
        category_id = coerce_int("category_id", category_id)
    items = item_service.list_items(category_id)
    return jsonify([item.to_dict() for item in items]), 200


@items_bp.get("/<int:item_id>")
@require_auth
def get_item(item_id: int):
    item = item_service.get_item(item_id)
    return jsonify(item.to_dict()), 200


@items_bp.put("/<int:item_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def update_item(item_id: int):
    item = item_service.update_item(item_id, request.get_json(silent=True))
    return jsonify(item.to_dict()), 200


@items_bp.delete("/<int:item_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def delete_item(item_id: int):
    cascade_service.delete_item(item_id)
    return "", 204


@items_bp.post("/items/bulk")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def bulk_load_items():
    """
    Bulk inventory loader: {"inventory_id": 1, "items": [{item_id, quantity, location?}]}.

    All lines are applied or none are.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or data.get("inventory_id") is None:
        raise ValidationError("Missing required fields: inventory_id, items")
    inventory_id = coerce_int("inventory_id", data["inventory_id"])
    lines = parse_stock_lines(data.get("items"))

    rows = inventory_service.load_inventory_items(inventory_id, lines)
    return jsonify({
        "inventory_id": inventory_id,
        "count": len(rows),
        "items": [row.to_dict() for row in rows],
    }), 201


@items_bp.get("/<int:store_id>/items/by-rack")
@require_auth
def store_items_by_rack(store_id: int):
    groups = inventory_service.get_store_items_by_rack(store_id)
    return jsonify(groups), 200
