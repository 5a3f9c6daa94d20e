# Overview: Unit tests for payload validation, time parsing and database error translation.

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from retailhub.errors import ConflictError, ValidationError, translate_db_error
from retailhub.models import Item, Store
from retailhub.time_utils import parse_iso_datetime, to_utc_z
from retailhub.validation import (
    ModelValidationPolicy,
    as_batch,
    coerce_int,
    parse_location,
    parse_sale_lines,
    parse_stock_lines,
    validate_payload,
)


ITEM_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "price_cents", "category_id"}),
    required_on_create=frozenset({"name", "price_cents", "category_id"}),
)


class TestCoerceInt:

    @pytest.mark.parametrize("value,expected", [(5, 5), ("42", 42), (" 7 ", 7), ("-3", -3)])
    def test_accepts_plain_integers(self, value, expected):
        assert coerce_int("n", value) == expected

    @pytest.mark.parametrize("value", [True, 1.0, "1.5", "1e3", "", "ten", None, [1]])
    def test_rejects_everything_else(self, value):
        with pytest.raises(ValidationError):
            coerce_int("n", value)


class TestValidatePayload:

    def test_create_requires_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Item, payload={"name": "Gum"}, policy=ITEM_POLICY, partial=False)
        assert exc_info.value.message == "Missing required fields: category_id, price_cents"

    def test_blank_required_field_counts_as_missing(self):
        with pytest.raises(ValidationError):
            validate_payload(
                model=Item,
                payload={"name": "   ", "price_cents": 1, "category_id": 1},
                policy=ITEM_POLICY,
                partial=False,
            )

    def test_partial_validates_only_given_keys(self):
        patch = validate_payload(model=Item, payload={"price_cents": "250"}, policy=ITEM_POLICY, partial=True)
        assert patch == {"price_cents": 250}

    def test_strings_are_stripped(self):
        patch = validate_payload(model=Item, payload={"name": "  Gum "}, policy=ITEM_POLICY, partial=True)
        assert patch["name"] == "Gum"

    def test_field_outside_policy(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"id": 3}, policy=ITEM_POLICY, partial=True)

    def test_non_nullable_null(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"name": None}, policy=ITEM_POLICY, partial=True)

    def test_length_limit(self):
        policy = ModelValidationPolicy(writable_fields=frozenset({"code"}))
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Store, payload={"code": "X" * 33}, policy=policy, partial=True)
        assert exc_info.value.message == "code exceeds max length 32"

    def test_extra_fields_pass_through(self):
        policy = ModelValidationPolicy(writable_fields=frozenset({"name"}), extra_fields=frozenset({"note"}))
        patch = validate_payload(model=Item, payload={"note": {"raw": True}}, policy=policy, partial=True)
        assert patch == {"note": {"raw": True}}

    def test_payload_must_be_object(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload=["name"], policy=ITEM_POLICY, partial=True)


class TestBatchAndLines:

    def test_as_batch(self):
        assert as_batch({"a": 1}) == ([{"a": 1}], False)
        assert as_batch([{"a": 1}, {"b": 2}]) == ([{"a": 1}, {"b": 2}], True)
        with pytest.raises(ValidationError):
            as_batch([])
        with pytest.raises(ValidationError):
            as_batch([{"a": 1}, 2])

    def test_sale_lines(self):
        assert parse_sale_lines([{"item_id": "3", "quantity": 2}]) == [{"item_id": 3, "quantity": 2}]

    @pytest.mark.parametrize("lines", [
        None,
        [],
        [{"item_id": 1}],
        [{"item_id": 1, "quantity": 0}],
        [{"item_id": 1, "quantity": -2}],
        ["1x2"],
    ])
    def test_bad_sale_lines(self, lines):
        with pytest.raises(ValidationError):
            parse_sale_lines(lines)

    def test_stock_lines_allow_zero(self):
        lines = parse_stock_lines([{"item_id": 1, "quantity": 0}])
        assert lines == [{"item_id": 1, "quantity": 0, "location": None}]

    def test_location_cleaning(self):
        assert parse_location({"rack": " A1 ", "shelf": ""}) == {"rack": "A1", "shelf": None}
        with pytest.raises(ValidationError):
            parse_location({"bin": "7"})
        with pytest.raises(ValidationError):
            parse_location({"rack": "R" * 65})

    @pytest.mark.parametrize("raw", [{}, {"rack": None}, {"aisle": "", "shelf": "  "}])
    def test_empty_location_is_none(self, raw):
        assert parse_location(raw) is None


class TestTimeParsing:

    def test_z_suffix_and_offsets_normalize_to_naive_utc(self):
        assert parse_iso_datetime("2026-01-31T10:00:00Z") == datetime(2026, 1, 31, 10, 0, 0)
        assert parse_iso_datetime("2026-01-31T12:00:00+02:00") == datetime(2026, 1, 31, 10, 0, 0)

    def test_bare_date_is_midnight(self):
        assert parse_iso_datetime("2026-01-31") == datetime(2026, 1, 31)

    def test_empty_is_none(self):
        assert parse_iso_datetime(None) is None
        assert parse_iso_datetime("  ") is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_iso_datetime("last tuesday")

    def test_serialization(self):
        assert to_utc_z(datetime(2026, 1, 31, 10, 0, 0, 123456)) == "2026-01-31T10:00:00Z"
        assert to_utc_z(None) is None


class _FakeDriverError(Exception):
    pass


def _integrity(message: str) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, _FakeDriverError(message))


class TestTranslateDbError:

    def test_sqlite_unique_maps_to_message(self):
        err = translate_db_error(_integrity("UNIQUE constraint failed: stores.code"))
        assert isinstance(err, ConflictError)
        assert err.message == "A store with this code exists"

    def test_composite_unique(self):
        err = translate_db_error(_integrity("UNIQUE constraint failed: store_staff.store_id, store_staff.user_id"))
        assert err.message == "User is already staff of this store"

    def test_named_constraint(self):
        err = translate_db_error(_integrity('duplicate key value violates unique constraint "uq_items_name"'))
        assert err.message == "An item with this name already exists."

    def test_foreign_key(self):
        err = translate_db_error(_integrity("FOREIGN KEY constraint failed"))
        assert isinstance(err, ConflictError)

    def test_not_null_is_validation(self):
        err = translate_db_error(_integrity("NOT NULL constraint failed: items.name"))
        assert isinstance(err, ValidationError)

    def test_other_errors_are_not_translated(self):
        from sqlalchemy.exc import OperationalError

        assert translate_db_error(OperationalError("SELECT 1", {}, _FakeDriverError("locked"))) is None
