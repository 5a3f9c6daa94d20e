# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import Branch, Store
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid ACCESS token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.access_token: The presented plaintext token (for logout)

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.access_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """Require the caller's role to be one of roles. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            if user.role not in roles:
                return jsonify({
                    "error": "Forbidden: You do not have the required permissions.",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def _lookup_branch(resource_id: int):
    return db.session.query(Branch).filter_by(id=resource_id).first()


def _lookup_store(resource_id: int):
    return db.session.query(Store).filter_by(id=resource_id).first()


# resource type -> (lookup, display name)
OWNERSHIP_LOOKUPS = {
    "branch": (_lookup_branch, "Branch"),
    "store": (_lookup_store, "Store"),
}


def require_ownership(resource_type: str, param: str = "id"):
    """
    Require the caller to own the resource named by the URL parameter.

    Returns 404 if the resource does not exist and 403 if its owner_id is
    not the caller. The loaded record is exposed as g.owned_resource.
    """
    if resource_type not in OWNERSHIP_LOOKUPS:
        raise ValueError(f"Unknown ownership resource type: {resource_type}")
    lookup, label = OWNERSHIP_LOOKUPS[resource_type]

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            record = lookup(kwargs[param])
            if record is None:
                return jsonify({"error": f"{label} not found"}), 404

            if record.owner_id != user.id:
                return jsonify({"error": f"Forbidden: You do not own this {resource_type}."}), 403

            g.owned_resource = record
            return f(*args, **kwargs)

        return decorated_function
    return decorator
