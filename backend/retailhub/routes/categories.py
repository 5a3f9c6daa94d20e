# Overview: Flask API routes for category operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from retailhub.decorators import require_auth, require_roles
from retailhub.models import ROLE_ADMIN, ROLE_MANAGER
from retailhub.services import cascade_service, category_service
from retailhub.validation import as_batch


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.post("")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def create_categories():
    records, was_list = as_batch(request.get_json(silent=True))
    categories = category_service.create_categories(records)
    if was_list:
        return jsonify([category.to_dict() for category in categories]), 201
    return jsonify(categories[0].to_dict()), 201


@categories_bp.get("")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def list_categories():
    categories = category_service.list_categories()
    return jsonify([category.to_dict() for category in categories]), 200


@categories_bp.get("/<int:category_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def get_category(category_id: int):
    category = category_service.get_category(category_id)
    return jsonify(category.to_dict()), 200


@categories_bp.put("/<int:category_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def update_category(category_id: int):
    category = category_service.update_category(category_id, request.get_json(silent=True))
    return jsonify(category.to_dict()), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def delete_category(category_id: int):
    cascade_service.delete_category(category_id)
    return "", 204


@categories_bp.get("/<int:category_id>/items")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def list_category_items(category_id: int):
    items = category_service.list_category_items(category_id)
    return jsonify([item.to_dict() for item in items]), 200
