# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from retailhub.decorators import require_auth, require_roles
from retailhub.models import ROLE_ADMIN, ROLE_MANAGER
from retailhub.services import cascade_service, inventory_service
from retailhub.validation import parse_stock_lines


inventories_bp = Blueprint("inventories", __name__, url_prefix="/api/inventories")


@inventories_bp.post("/<int:store_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def create_inventory(store_id: int):
    data = request.get_json(silent=True) or {}
    inventory, created = inventory_service.create_inventory(store_id, data.get("name"))
    return jsonify(inventory.to_dict()), 201 if created else 200


@inventories_bp.get("/<int:store_id>")
@require_auth
def get_store_inventory(store_id: int):
    inventory = inventory_service.get_inventory_by_store(store_id)
    return jsonify(inventory.to_dict()), 200


@inventories_bp.put("/<int:inventory_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def rename_inventory(inventory_id: int):
    data = request.get_json(silent=True) or {}
    inventory = inventory_service.rename_inventory(inventory_id, data.get("name"))
    return jsonify(inventory.to_dict()), 200


@inventories_bp.delete("/<int:inventory_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def delete_inventory(inventory_id: int):
    cascade_service.delete_inventory(inventory_id)
    return "", 204


@inventories_bp.post("/<int:inventory_id>/items")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def add_inventory_items(inventory_id: int):
    """Accepts one {item_id, quantity, location?} object or a list of them."""
    data = request.get_json(silent=True)
    if isinstance(data, list):
        rows = inventory_service.load_inventory_items(inventory_id, parse_stock_lines(data))
        return jsonify([row.to_dict() for row in rows]), 201

    line = parse_stock_lines([data])[0]
    row = inventory_service.add_inventory_item(
        inventory_id, line["item_id"], line["quantity"], line["location"],
    )
    return jsonify(row.to_dict()), 201


@inventories_bp.get("/<int:inventory_id>/items")
@require_auth
def list_inventory_items(inventory_id: int):
    rows = inventory_service.list_inventory_items(inventory_id)
    return jsonify([row.to_dict() for row in rows]), 200


@inventories_bp.get("/<int:inventory_id>/items/by-rack")
@require_auth
def list_items_by_rack(inventory_id: int):
    rows = inventory_service.get_items_by_rack(inventory_id, request.args.get("rack"))
    return jsonify([row.to_dict() for row in rows]), 200
