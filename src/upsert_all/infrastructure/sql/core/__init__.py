"""Core SQL utilities package."""

from .identifier import qualify_table, quote_identifier
from .literals import encode_array_text, encode_json, encode_literal, quote_text

__all__ = [
    "quote_identifier",
    "qualify_table",
    "encode_array_text",
    "encode_json",
    "encode_literal",
    "quote_text",
]
