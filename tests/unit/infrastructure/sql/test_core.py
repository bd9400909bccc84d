"""
Unit tests for SQL core utilities: identifiers and literals.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest

from upsert_all.infrastructure.sql.core.identifier import (
    qualify_table,
    quote_identifier,
)
from upsert_all.infrastructure.sql.core.literals import (
    encode_array_text,
    encode_json,
    encode_literal,
    quote_text,
)


class Color(str, Enum):
    RED = "red"


class TestQuoteIdentifier:
    """Tests for quote_identifier function."""

    def test_quote_ascii_column(self):
        """ASCII column names should be double-quoted."""
        assert quote_identifier("company_id") == '"company_id"'

    def test_quote_preserves_case(self):
        """Mixed-case names keep their case inside quotes."""
        assert quote_identifier("createdAt") == '"createdAt"'

    def test_quote_non_ascii_column(self):
        """Non-ASCII names should be double-quoted."""
        assert quote_identifier("年金计划号") == '"年金计划号"'

    def test_quote_with_internal_quotes(self):
        """Internal double quotes should be escaped."""
        assert quote_identifier('column"name') == '"column""name"'

    def test_quote_rejects_empty(self):
        with pytest.raises(ValueError, match="non-empty string"):
            quote_identifier("")

    def test_quote_rejects_too_long(self):
        with pytest.raises(ValueError, match="too long"):
            quote_identifier("x" * 64)


class TestQualifyTable:
    """Tests for qualify_table function."""

    def test_qualify_with_schema(self):
        """Table with schema should quote both parts."""
        assert qualify_table("users", schema="crm") == '"crm"."users"'

    def test_qualify_without_schema(self):
        """Table without schema should just be quoted."""
        assert qualify_table("users") == '"users"'

    def test_qualify_blank_schema(self):
        assert qualify_table("users", schema="  ") == '"users"'


class TestQuoteText:
    """Tests for quote_text function."""

    def test_plain_text(self):
        assert quote_text("hello") == "'hello'"

    def test_single_quotes_doubled(self):
        assert quote_text("O'Brien") == "'O''Brien'"

    def test_backslash_uses_escape_string(self):
        assert quote_text("C:\\temp") == "E'C:\\\\temp'"

    def test_injection_attempt_stays_inside_literal(self):
        assert quote_text("x'); DROP TABLE users; --") == "'x''); DROP TABLE users; --'"

    def test_nul_rejected(self):
        with pytest.raises(ValueError, match="NUL"):
            quote_text("a\x00b")


class TestEncodeLiteral:
    """Tests for encode_literal function."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "NULL"),
            (True, "TRUE"),
            (False, "FALSE"),
            (42, "42"),
            (-7, "-7"),
            (1.5, "1.5"),
            (Decimal("12.340"), "12.340"),
            ("text", "'text'"),
        ],
    )
    def test_scalars(self, value, expected):
        assert encode_literal(value) == expected

    def test_special_floats_are_quoted(self):
        assert encode_literal(float("nan")) == "'NaN'"
        assert encode_literal(float("inf")) == "'Infinity'"
        assert encode_literal(float("-inf")) == "'-Infinity'"

    def test_decimal_nan(self):
        assert encode_literal(Decimal("NaN")) == "'NaN'"

    def test_temporal_values_use_iso_format(self):
        assert encode_literal(datetime(2024, 1, 2, 3, 4, 5)) == "'2024-01-02T03:04:05'"
        assert encode_literal(date(2024, 1, 2)) == "'2024-01-02'"
        assert encode_literal(time(13, 30)) == "'13:30:00'"

    def test_timedelta_as_interval_seconds(self):
        assert encode_literal(timedelta(minutes=2)) == "'120.0 seconds'"

    def test_uuid(self):
        value = UUID("12345678-1234-5678-1234-567812345678")
        assert encode_literal(value) == "'12345678-1234-5678-1234-567812345678'"

    def test_bytes_as_hex_bytea(self):
        assert encode_literal(b"\x01\xff") == "E'\\\\x01ff'"

    def test_enum_uses_value(self):
        assert encode_literal(Color.RED) == "'red'"

    def test_dict_as_compact_json(self):
        assert encode_literal({"a": 1, "b": [1, 2]}) == '\'{"a":1,"b":[1,2]}\''

    def test_json_quotes_escaped(self):
        assert encode_literal({"name": "it's"}) == "'{\"name\":\"it''s\"}'"

    def test_list_without_array_type_is_json(self):
        assert encode_literal([1, 2], "jsonb") == "'[1,2]'"

    def test_json_string_scalar_is_json_text(self):
        assert encode_literal("hello", "jsonb") == "'\"hello\"'"

    def test_json_number_and_bool_scalars(self):
        assert encode_literal(5, "jsonb") == "'5'"
        assert encode_literal(True, " JSON ") == "'true'"

    def test_json_null_stays_sql_null(self):
        assert encode_literal(None, "jsonb") == "NULL"

    def test_list_for_array_column(self):
        assert encode_literal(["a", "b"], "text[]") == "'{\"a\",\"b\"}'"

    def test_empty_list_for_array_column(self):
        assert encode_literal([], "integer[]") == "'{}'"

    def test_unknown_type_falls_back_to_text(self):
        class Custom:
            def __str__(self):
                return "custom"

        assert encode_literal(Custom()) == "'custom'"


class TestEncodeHelpers:
    def test_encode_json_handles_datetimes_and_decimals(self):
        payload = {"at": datetime(2024, 5, 1), "amount": Decimal("1.10")}
        assert encode_json(payload) == '{"at":"2024-05-01T00:00:00","amount":"1.10"}'

    def test_array_text_nulls_and_numbers(self):
        assert encode_array_text([1, None, 2.5]) == "{1,NULL,2.5}"

    def test_array_text_escapes_quotes(self):
        assert encode_array_text(['say "hi"']) == '{"say \\"hi\\""}'

    def test_nested_arrays(self):
        assert encode_array_text([[1, 2], [3, 4]]) == "{{1,2},{3,4}}"
