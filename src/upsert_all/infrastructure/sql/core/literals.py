"""
SQL literal encoding.

Statements produced by the upsert builder embed their values as literals
instead of bound parameters, so every value passes through
``encode_literal`` on its way into the statement text. Strings are always
quoted here; nothing reaches the statement unescaped.
"""

import json
import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID


def quote_text(text: str) -> str:
    """
    Quote a text literal.

    Single quotes are doubled. Text containing backslashes is emitted as an
    escape string (E'...') with backslashes doubled, so the result does not
    depend on standard_conforming_strings.

    Example:
        >>> quote_text("O'Brien")
        "'O''Brien'"
    """
    if "\x00" in text:
        raise ValueError("PostgreSQL text cannot contain NUL characters")
    escaped = text.replace("'", "''")
    if "\\" in escaped:
        return "E'" + escaped.replace("\\", "\\\\") + "'"
    return f"'{escaped}'"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_json(value: Any) -> str:
    """Render a value as compact JSON text."""
    return json.dumps(value, separators=(",", ":"), default=_json_default)


def _is_array_type(database_type: Optional[str]) -> bool:
    return bool(database_type) and database_type.rstrip().endswith("[]")


def _is_json_type(database_type: Optional[str]) -> bool:
    return bool(database_type) and database_type.strip().lower() in ("json", "jsonb")


def _encode_float(value: float) -> str:
    if math.isnan(value):
        return "'NaN'"
    if math.isinf(value):
        return "'Infinity'" if value > 0 else "'-Infinity'"
    return repr(value)


def _array_element(item: Any) -> str:
    if item is None:
        return "NULL"
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, (int, float, Decimal)) and not isinstance(item, Enum):
        return str(item)
    if isinstance(item, (list, tuple)):
        return encode_array_text(item)
    if isinstance(item, Enum):
        item = item.value
    if isinstance(item, (datetime, date, time)):
        item = item.isoformat()
    text = str(item).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def encode_array_text(values: Any) -> str:
    """
    Render a sequence in PostgreSQL array input syntax.

    Example:
        >>> encode_array_text(["a", None, 'say "hi"'])
        '{"a",NULL,"say \\\\"hi\\\\""}'
    """
    return "{" + ",".join(_array_element(item) for item in values) + "}"


def encode_literal(value: Any, database_type: Optional[str] = None) -> str:
    """
    Encode a Python value as a PostgreSQL literal.

    Args:
        value: Value to encode
        database_type: Native type of the destination column. Lists bound to
            an array column (type ending in ``[]``) use array input syntax,
            any other list or dict becomes JSON text. Every value bound to a
            json or jsonb column is encoded as JSON text.

    Returns:
        Literal SQL text (without a cast)

    Examples:
        >>> encode_literal(None)
        'NULL'
        >>> encode_literal(3)
        '3'
        >>> encode_literal("it's")
        "'it''s'"
    """
    if value is None:
        return "NULL"
    if _is_json_type(database_type):
        return quote_text(encode_json(value))
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, Enum):
        return encode_literal(value.value, database_type)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _encode_float(value)
    if isinstance(value, Decimal):
        if value.is_nan():
            return "'NaN'"
        if value.is_infinite():
            return "'Infinity'" if value > 0 else "'-Infinity'"
        return str(value)
    if isinstance(value, str):
        return quote_text(value)
    if isinstance(value, (datetime, date, time)):
        return quote_text(value.isoformat())
    if isinstance(value, timedelta):
        return quote_text(f"{value.total_seconds()} seconds")
    if isinstance(value, UUID):
        return quote_text(str(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote_text("\\x" + bytes(value).hex())
    if isinstance(value, (list, tuple)) and _is_array_type(database_type):
        return quote_text(encode_array_text(value))
    if isinstance(value, (dict, list, tuple)):
        return quote_text(encode_json(value))
    return quote_text(str(value))
