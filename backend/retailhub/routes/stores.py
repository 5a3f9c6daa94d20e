# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from retailhub.decorators import require_auth, require_ownership, require_roles
from retailhub.models import ROLE_ADMIN, ROLE_MANAGER
from retailhub.services import cascade_service, store_service, user_service
from retailhub.validation import parse_id_list


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.post("/branch/<int:branch_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
@require_ownership("branch", "branch_id")
def create_store(branch_id: int):
    store = store_service.create_store(g.current_user, branch_id, request.get_json(silent=True))
    return jsonify(store.to_dict(include_related=True)), 201


@stores_bp.get("/branch/<int:branch_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def list_branch_stores(branch_id: int):
    stores = store_service.list_branch_stores(branch_id)
    return jsonify([store.to_dict() for store in stores]), 200


@stores_bp.get("")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def list_stores():
    owner_id = user_service.resolve_owner_id(g.current_user)
    stores = store_service.list_owned_stores(owner_id)
    return jsonify([store.to_dict() for store in stores]), 200


@stores_bp.get("/<int:store_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def get_store(store_id: int):
    store = store_service.get_store(store_id)
    return jsonify(store.to_dict(include_related=True)), 200


@stores_bp.put("/<int:store_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
@require_ownership("store", "store_id")
def update_store(store_id: int):
    store = store_service.update_store(store_id, request.get_json(silent=True))
    return jsonify(store.to_dict()), 200


@stores_bp.delete("/<int:store_id>")
@require_auth
@require_roles(ROLE_ADMIN)
@require_ownership("store", "store_id")
def delete_store(store_id: int):
    cascade_service.delete_store(store_id)
    return "", 204


@stores_bp.post("/<int:store_id>/staff")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def add_staff(store_id: int):
    rows = store_service.add_staff(store_id, request.get_json(silent=True))
    return jsonify([row.to_dict() for row in rows]), 201


@stores_bp.get("/<int:store_id>/staff")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def list_staff(store_id: int):
    rows = store_service.list_staff(store_id)
    return jsonify([row.to_dict() for row in rows]), 200


@stores_bp.delete("/<int:store_id>/staff")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def remove_staff(store_id: int):
    data = request.get_json(silent=True) or {}
    user_ids = parse_id_list(data.get("user_ids"), "user_ids")
    removed = store_service.remove_staff(store_id, user_ids)
    return jsonify({"removed": removed}), 200
