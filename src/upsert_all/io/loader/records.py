"""Conversion between typed records and database field maps.

The upsert engine never looks inside a record: it asks a codec for the
record's field map on the way in, and asks it to rebuild a record from a
result row on the way out.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Protocol, Type

from pydantic import BaseModel, ValidationError


class RecordNotRepresentable(Exception):
    """Raised by a codec when a result row cannot become a record."""


class RecordCodec(Protocol):
    """Protocol for record <-> field map conversion."""

    def to_field_map(self, record: Any) -> Dict[str, Any]: ...
    def from_row(self, record_type: Optional[type], row: Mapping[str, Any]) -> Any: ...


class PydanticRecordCodec:
    """
    Codec for pydantic models.

    Only fields explicitly set on a record are exported, so a record built
    with a subset of fields leaves the remaining columns out of the write.
    """

    def __init__(self, by_alias: bool = True):
        self.by_alias = by_alias

    def to_field_map(self, record: BaseModel) -> Dict[str, Any]:
        return record.model_dump(by_alias=self.by_alias, exclude_unset=True)

    def from_row(
        self, record_type: Optional[Type[BaseModel]], row: Mapping[str, Any]
    ) -> BaseModel:
        if record_type is None:
            raise RecordNotRepresentable("No record type to rebuild rows into")
        try:
            return record_type.model_validate(dict(row))
        except ValidationError as exc:
            raise RecordNotRepresentable(str(exc)) from exc


class DictRecordCodec:
    """Codec treating plain dictionaries as records."""

    def to_field_map(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(record)

    def from_row(self, record_type: Optional[type], row: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(row)


def default_codec_for(record_type: Optional[type]) -> RecordCodec:
    """Pick the codec matching a record type."""
    if isinstance(record_type, type) and issubclass(record_type, BaseModel):
        return PydanticRecordCodec()
    if record_type is None or (
        isinstance(record_type, type) and issubclass(record_type, Mapping)
    ):
        return DictRecordCodec()
    raise TypeError(
        f"No record codec for type '{getattr(record_type, '__name__', record_type)}'; "
        "pass codec= explicitly"
    )


__all__ = [
    "DictRecordCodec",
    "PydanticRecordCodec",
    "RecordCodec",
    "RecordNotRepresentable",
    "default_codec_for",
]
