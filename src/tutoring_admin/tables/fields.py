from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from ..errors import ParseError, TypeMismatch

"""Field codec: converts a raw worksheet cell to a typed value and back.

Cells arrive from the row store already normalized (blank -> ""), so each
parser only has to handle the Python types openpyxl/pandas hand back plus
strings typed in by hand.

DATE values are epoch milliseconds in memory, ``-1`` meaning unset. In the
workbook they are naive UTC datetimes, or an empty cell when unset.

An absent value (None) or a blank cell reads as the empty value of its
type: False for BOOLEAN, -1 for NUMBER and DATE, "" for STRING, None for
JSON (written back as an empty cell).
"""

__all__ = [
    "FieldType",
    "Field",
    "UNSET",
    "parse_value",
    "serialize_value",
]

UNSET = -1


class FieldType(Enum):
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    JSON = "json"


@dataclass(frozen=True)
class Field:
    """One column of a table: a type tag plus the column (record key) name."""
    type: FieldType
    name: str

    def parse(self, raw: Any) -> Any:
        return parse_value(self, raw)

    def serialize(self, value: Any) -> Any:
        return serialize_value(self, value)


def _mismatch(field: Field, value: Any) -> TypeMismatch:
    return TypeMismatch(f'value "{value!r}" failed the type validation for field name "{field.name}"')


# BOOLEAN

def _parse_boolean(field: Field, raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() == "true"
    return bool(raw)


def _serialize_boolean(field: Field, value: Any) -> bool:
    return _parse_boolean(field, value)


# NUMBER

def _to_number(field: Field, raw: Any) -> int | float:
    # blank cell or absent value: unset, like DATE
    if raw is None or raw == "":
        return UNSET
    if isinstance(raw, bool):
        raise _mismatch(field, raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if math.isnan(raw) or math.isinf(raw):
            raise _mismatch(field, raw)
        return int(raw) if raw.is_integer() else raw
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return _to_number(field, float(text))
        except ValueError:
            raise _mismatch(field, raw) from None
    # numpy scalars expose item()
    item = getattr(raw, "item", None)
    if callable(item):
        return _to_number(field, item())
    raise _mismatch(field, raw)


# STRING

def _parse_string(field: Field, raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        # numeric-looking ids typed into the sheet come back as floats
        return str(int(raw))
    return str(raw)


# DATE

def _datetime_to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return round(value.timestamp() * 1000)


def _parse_date(field: Field, raw: Any) -> int:
    if raw is None or raw == "" or raw == UNSET:
        return UNSET
    # pandas.Timestamp is a datetime subclass
    if isinstance(raw, datetime):
        return _datetime_to_ms(raw)
    if isinstance(raw, date):
        return _datetime_to_ms(datetime(raw.year, raw.month, raw.day))
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if isinstance(raw, float) and math.isnan(raw):
            raise _mismatch(field, raw)
        return int(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if text == "-1":
            return UNSET
        try:
            return _datetime_to_ms(datetime.fromisoformat(text))
        except ValueError:
            raise _mismatch(field, raw) from None
    raise _mismatch(field, raw)


def _serialize_date(field: Field, value: Any) -> datetime | str:
    ms = _parse_date(field, value)
    if ms == UNSET:
        return ""
    return datetime.fromtimestamp(ms / 1000, UTC).replace(tzinfo=None)


# JSON

def _parse_json(field: Field, raw: Any) -> Any:
    if raw == "":
        return None
    if not isinstance(raw, str):
        # a bare number or boolean is valid JSON already decoded by the sheet
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f'malformed JSON in field "{field.name}": {e}') from e


def _serialize_json(field: Field, value: Any) -> str:
    if value is None:
        return ""
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise TypeMismatch(f'value for field "{field.name}" is not JSON serializable: {e}') from e


_PARSERS = {
    FieldType.BOOLEAN: _parse_boolean,
    FieldType.NUMBER: _to_number,
    FieldType.STRING: _parse_string,
    FieldType.DATE: _parse_date,
    FieldType.JSON: _parse_json,
}

_SERIALIZERS = {
    FieldType.BOOLEAN: _serialize_boolean,
    FieldType.NUMBER: _to_number,
    FieldType.STRING: _parse_string,
    FieldType.DATE: _serialize_date,
    FieldType.JSON: _serialize_json,
}


def parse_value(field: Field, raw: Any) -> Any:
    """Decode a raw cell into the in-memory value for ``field``."""
    return _PARSERS[field.type](field, raw)


def serialize_value(field: Field, value: Any) -> Any:
    """Encode an in-memory value into the cell written for ``field``."""
    return _SERIALIZERS[field.type](field, value)
