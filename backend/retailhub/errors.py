# Overview: Error taxonomy, persistence-error translation, and JSON error handlers.

"""
Every failure a client can see belongs to one ErrorKind.

Services raise ApiError subclasses directly for business rules, and
persistence exceptions are translated in exactly one place
(translate_db_error, called from concurrency.atomic and from the
fallback handler below). Routes never inspect database error codes.
"""

from __future__ import annotations

import enum
import re

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import NoResultFound
from werkzeug.exceptions import HTTPException


class ErrorKind(enum.Enum):
    VALIDATION = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL = 500

    @property
    def status_code(self) -> int:
        return self.value


class ApiError(Exception):
    """Base class for errors that map to a client-visible status code."""
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        body.update(self.details)
        return body


class ValidationError(ApiError):
    """400-level input problem."""
    kind = ErrorKind.VALIDATION


class AuthenticationError(ApiError):
    """Missing, invalid, expired or revoked credential."""
    kind = ErrorKind.UNAUTHORIZED


class PermissionDeniedError(ApiError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(ApiError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(ApiError):
    """409-level conflict (duplicate unique field, rows still in use)."""
    kind = ErrorKind.CONFLICT


class InsufficientStockError(ConflictError):
    """A sale line asked for more than the inventory holds."""

    def __init__(self, item_id: int, requested: int, available: int | None):
        super().__init__(
            f"Insufficient stock for item ID: {item_id}",
            details={
                "item_id": item_id,
                "requested_quantity": requested,
                "available_quantity": available or 0,
            },
        )


# Named unique constraints -> (table, columns, client message)
UNIQUE_CONSTRAINTS = {
    "uq_users_email": ("users", ("email",), "A user with this email already exists."),
    "uq_users_username": ("users", ("username",), "A user with this username already exists."),
    "uq_branches_name": ("branches", ("name",), "A branch with this name exists"),
    "uq_stores_name": ("stores", ("name",), "A store with this name exists"),
    "uq_stores_code": ("stores", ("code",), "A store with this code exists"),
    "uq_store_staff_store_user": ("store_staff", ("store_id", "user_id"), "User is already staff of this store"),
    "uq_inventories_store_id": ("inventories", ("store_id",), "This store already has an inventory"),
    "uq_categories_name": ("categories", ("name",), "A category with this name already exists."),
    "uq_items_name": ("items", ("name",), "An item with this name already exists."),
    "uq_inventory_items_inventory_item": (
        "inventory_items", ("inventory_id", "item_id"), "This item is already stocked in the inventory"
    ),
    "uq_locations_inventory_item_id": ("locations", ("inventory_item_id",), "This inventory item already has a location"),
}

_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<cols>[\w., ]+)")
_QUOTED_NAME = re.compile(r'constraint "(?P<name>\w+)"')


def _unique_message(exc: IntegrityError) -> str | None:
    orig = exc.orig
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    text = str(orig)

    if name is None:
        match = _QUOTED_NAME.search(text)
        if match:
            name = match.group("name")
    if name in UNIQUE_CONSTRAINTS:
        return UNIQUE_CONSTRAINTS[name][2]

    match = _SQLITE_UNIQUE.search(text)
    if match:
        qualified = [c.strip() for c in match.group("cols").split(",")]
        table = qualified[0].split(".")[0]
        columns = tuple(c.split(".", 1)[1] for c in qualified if "." in c)
        for c_table, c_columns, message in UNIQUE_CONSTRAINTS.values():
            if c_table == table and c_columns == columns:
                return message
        return "A unique field already exists."
    return None


def translate_db_error(exc: SQLAlchemyError) -> ApiError | None:
    """
    Map a persistence exception to the error taxonomy.

    Returns None for exceptions that have no client-facing meaning; callers
    re-raise those so the generic 500 handler logs them.
    """
    if isinstance(exc, NoResultFound):
        return NotFoundError("Record not found")

    if isinstance(exc, IntegrityError):
        text = str(exc.orig).lower()
        message = _unique_message(exc)
        if message:
            return ConflictError(message)
        if "foreign key" in text:
            return ConflictError("Referenced record does not exist or is still in use")
        if "check constraint" in text:
            return ConflictError("Value violates a data constraint")
        if "not null" in text:
            return ValidationError("A required field is missing")
        return ConflictError("A unique field already exists.")

    return None


def register_error_handlers(app) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        return jsonify(exc.to_dict()), exc.kind.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc: SQLAlchemyError):
        translated = translate_db_error(exc)
        if translated is None:
            current_app.logger.exception("Unhandled database error")
            return jsonify({"error": "An internal server error occurred."}), 500
        return jsonify(translated.to_dict()), translated.kind.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "An internal server error occurred."}), 500
