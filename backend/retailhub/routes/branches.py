# Overview: Flask API routes for branch operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from retailhub.decorators import require_auth, require_ownership, require_roles
from retailhub.models import ROLE_ADMIN, ROLE_MANAGER
from retailhub.services import branch_service, cascade_service, user_service


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.post("")
@require_auth
@require_roles(ROLE_ADMIN)
def create_branch():
    branch = branch_service.create_branch(g.current_user, request.get_json(silent=True))
    return jsonify(branch.to_dict()), 201


@branches_bp.get("")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def list_branches():
    owner_id = user_service.resolve_owner_id(g.current_user)
    branches = branch_service.list_owned_branches(owner_id)
    return jsonify([branch.to_dict() for branch in branches]), 200


@branches_bp.get("/<int:branch_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def get_branch(branch_id: int):
    branch = branch_service.get_branch(branch_id)
    return jsonify(branch.to_dict(include_owner=True)), 200


@branches_bp.put("/<int:branch_id>")
@require_auth
@require_roles(ROLE_ADMIN)
@require_ownership("branch", "branch_id")
def update_branch(branch_id: int):
    branch = branch_service.update_branch(branch_id, request.get_json(silent=True))
    return jsonify(branch.to_dict()), 200


@branches_bp.delete("/<int:branch_id>")
@require_auth
@require_roles(ROLE_ADMIN)
@require_ownership("branch", "branch_id")
def delete_branch(branch_id: int):
    cascade_service.delete_branch(branch_id)
    return "", 204
