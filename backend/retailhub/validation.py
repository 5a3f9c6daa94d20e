from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models import ROLES, ROLE_MANAGER, ROLE_CASHIER
from .time_utils import parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999
# 100% expressed in basis points
MAX_BPS = 10_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: accepted keys that are not columns (e.g. a plaintext
      password that the service hashes); passed through untouched
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)
    extra_fields: frozenset[str] = field(default_factory=frozenset)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(name: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                return parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields + extra_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only allowed fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if f not in payload or payload[f] is None or (isinstance(payload[f], str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields and k not in policy.extra_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in policy.extra_fields:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.extra_fields:
            patch[k] = raw
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_json_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def as_batch(payload: Any) -> tuple[list[dict], bool]:
    """
    Normalize an "object or list" body.

    Returns (records, was_list). Lists must be non-empty and contain only
    objects.
    """
    if isinstance(payload, list):
        if not payload:
            raise ValidationError("Request body must be a non-empty list")
        for entry in payload:
            if not isinstance(entry, dict):
                raise ValidationError("Every entry must be a JSON object")
        return payload, True
    return [require_json_object(payload)], False


def enforce_rules_user(patch: dict) -> None:
    if "role" in patch and patch["role"] is not None:
        role = str(patch["role"]).upper()
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
        patch["role"] = role
    if "email" in patch and patch["email"] is not None:
        email = patch["email"].lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("email must be a valid email address")
        patch["email"] = email


def enforce_rules_staff_role(role: str) -> None:
    if role not in (ROLE_MANAGER, ROLE_CASHIER):
        raise ValidationError("Invalid role for staff. Must be MANAGER or CASHIER.")


def enforce_rules_store(patch: dict) -> None:
    for key in ("government_tax_bps", "service_charge_bps"):
        if key in patch and patch[key] is not None:
            if patch[key] < 0:
                raise ValidationError(f"{key} must be >= 0")
            if patch[key] > MAX_BPS:
                raise ValidationError(f"{key} cannot exceed {MAX_BPS}")


def enforce_rules_item(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")


def parse_stock_lines(raw_lines: Any) -> list[dict]:
    """
    Validate bulk loader lines: [{item_id, quantity, location?}, ...].

    quantity must be an integer >= 0. location, when present, is an object
    with optional aisle / rack / shelf strings.
    """
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for idx, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        if "item_id" not in raw or "quantity" not in raw:
            raise ValidationError(f"items[{idx}] requires item_id and quantity")
        item_id = coerce_int(f"items[{idx}].item_id", raw["item_id"])
        quantity = coerce_int(f"items[{idx}].quantity", raw["quantity"])
        if quantity < 0:
            raise ValidationError(f"items[{idx}].quantity must be >= 0")
        lines.append({
            "item_id": item_id,
            "quantity": quantity,
            "location": parse_location(raw.get("location"), f"items[{idx}].location"),
        })
    return lines


def parse_location(raw: Any, name: str = "location") -> dict | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError(f"{name} must be an object")
    unknown = set(raw) - {"aisle", "rack", "shelf"}
    if unknown:
        raise ValidationError(f"{name} has unknown fields: {', '.join(sorted(unknown))}")
    # Only supplied keys are kept; a supplied blank clears that field on update
    cleaned = {}
    for key in ("aisle", "rack", "shelf"):
        if key not in raw:
            continue
        value = raw[key]
        if value is not None:
            value = str(value).strip()
            if len(value) > 64:
                raise ValidationError(f"{name}.{key} exceeds max length 64")
        cleaned[key] = value or None
    if all(value is None for value in cleaned.values()):
        return None
    return cleaned


def parse_sale_lines(raw_lines: Any) -> list[dict]:
    """Validate sale lines: non-empty list of {item_id, quantity > 0}."""
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for idx, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        if "item_id" not in raw or "quantity" not in raw:
            raise ValidationError(f"items[{idx}] requires item_id and quantity")
        item_id = coerce_int(f"items[{idx}].item_id", raw["item_id"])
        quantity = coerce_int(f"items[{idx}].quantity", raw["quantity"])
        if quantity <= 0:
            raise ValidationError(f"items[{idx}].quantity must be > 0")
        lines.append({"item_id": item_id, "quantity": quantity})
    return lines


def parse_id_list(raw: Any, name: str) -> list[int]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError(f"{name} must be a non-empty list")
    return [coerce_int(f"{name}[{idx}]", v) for idx, v in enumerate(raw)]
