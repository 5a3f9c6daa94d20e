# Overview: Flask API routes for users and authentication; parses input and returns JSON responses.

"""
User and authentication API routes

- POST /api/users           public signup (creates an ADMIN tenant owner)
- POST /api/users/login     email + password -> access and refresh tokens
- POST /api/users/refresh   refresh token -> new access token
- POST /api/users/logout    revoke the presented tokens
- staff management for ADMIN / MANAGER
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_roles
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..services import auth_service, cascade_service, session_service, user_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.post("")
def signup_route():
    user = auth_service.signup(request.get_json(silent=True))
    return jsonify(user.to_dict()), 201


@users_bp.post("/login")
def login_route():
    """
    Authenticate user and issue tokens.

    The access token goes in "Authorization: Bearer <token>"; the refresh
    token is only accepted by /api/users/refresh.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email") or data.get("username")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password are required"}), 400

    user = auth_service.authenticate(email, password)
    if not user:
        current_app.logger.info("Failed login for %r from %s", email, request.remote_addr)
        return jsonify({"error": "Invalid credentials"}), 401

    tokens = session_service.issue_tokens(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    return jsonify({
        "user": user.to_dict(),
        "token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
    }), 200


@users_bp.post("/refresh")
def refresh_route():
    data = request.get_json(silent=True) or {}
    refresh_token = data.get("refresh_token")
    if not refresh_token:
        return jsonify({"error": "refresh_token is required"}), 400

    token = session_service.refresh_access_token(
        refresh_token,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({"token": token}), 200


@users_bp.post("/logout")
@require_auth
def logout_route():
    data = request.get_json(silent=True) or {}
    session_service.revoke_session(g.access_token, reason="User logout")
    if data.get("refresh_token"):
        session_service.revoke_session(data["refresh_token"], reason="User logout")
    return jsonify({"message": "Logged out successfully"}), 200


@users_bp.get("/me")
@require_auth
def me_route():
    return jsonify(g.current_user.to_dict()), 200


@users_bp.post("/staff")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def create_staff_route():
    user = auth_service.create_staff(g.current_user, request.get_json(silent=True))
    return jsonify(user.to_dict()), 201


@users_bp.get("")
@require_auth
def list_users_route():
    users = user_service.list_users(g.current_user)
    return jsonify([user.to_dict() for user in users]), 200


@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    user = user_service.get_tenant_user(g.current_user, user_id)
    return jsonify(user.to_dict()), 200


@users_bp.put("/<int:user_id>")
@require_auth
@require_roles(ROLE_ADMIN, ROLE_MANAGER)
def update_user_route(user_id: int):
    user = user_service.update_user(g.current_user, user_id, request.get_json(silent=True))
    return jsonify(user.to_dict()), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_roles(ROLE_ADMIN)
def delete_user_route(user_id: int):
    user = user_service.get_tenant_user(g.current_user, user_id)
    cascade_service.delete_user(user.id)
    return "", 204
