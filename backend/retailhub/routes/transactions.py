# Overview: Flask API routes for point-of-sale transactions; parses input and returns JSON responses.

from datetime import timedelta

from flask import Blueprint, jsonify, request, g

from retailhub.decorators import require_auth, require_roles
from retailhub.errors import ValidationError
from retailhub.models import ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER
from retailhub.services import transaction_service
from retailhub.time_utils import parse_iso_datetime
from retailhub.validation import coerce_int, parse_sale_lines


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

SALE_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)


def _parse_bound(name: str, value: str | None, end_of_day: bool = False):
    if value is None or not value.strip():
        return None
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")
    # A bare date as the upper bound covers that whole day
    if end_of_day and len(value.strip()) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


@transactions_bp.post("")
@require_auth
@require_roles(*SALE_ROLES)
def create_transaction():
    """
    Process a sale: {"store_id": 1, "items": [{"item_id": 2, "quantity": 3}], "inventory_id"?: 1}.

    The authenticated user is recorded as the cashier. Returns 409 with
    item_id / requested_quantity / available_quantity when stock is short.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or data.get("store_id") is None:
        raise ValidationError("Missing required fields: store_id, items")

    store_id = coerce_int("store_id", data["store_id"])
    lines = parse_sale_lines(data.get("items"))
    inventory_id = data.get("inventory_id")
    if inventory_id is not None:
        inventory_id = coerce_int("inventory_id", inventory_id)

    transaction = transaction_service.process_transaction(
        store_id=store_id,
        cashier_id=g.current_user.id,
        lines=lines,
        inventory_id=inventory_id,
    )
    return jsonify(transaction.to_dict()), 201


@transactions_bp.get("/store/<int:store_id>")
@require_auth
@require_roles(*SALE_ROLES)
def list_store_transactions(store_id: int):
    start = _parse_bound("start_date", request.args.get("start_date"))
    end = _parse_bound("end_date", request.args.get("end_date"), end_of_day=True)
    if start and end and start > end:
        raise ValidationError("start_date must be before end_date")

    transactions = transaction_service.list_store_transactions(store_id, start, end)
    return jsonify([t.to_dict(expand=True) for t in transactions]), 200


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_roles(*SALE_ROLES)
def get_transaction(transaction_id: int):
    transaction = transaction_service.get_transaction(transaction_id)
    return jsonify(transaction.to_dict(expand=True)), 200
