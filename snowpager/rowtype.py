"""Column metadata and row decoding for SQL API result sets.

The SQL API returns each partition as a list of raw rows (positional lists of
string-encoded scalars) plus a ``rowType`` list describing the columns. These
helpers turn raw rows into ``dict`` records keyed by column name, optionally
converting the string encoding back into Python values.
"""

from __future__ import annotations

import datetime
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable

from .errors import RowShapeError

Row = dict[str, Any]

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


@dataclass(frozen=True)
class ColumnDescriptor:
    """One entry of ``resultSetMetaData.rowType``."""

    name: str
    type: str = "text"
    nullable: bool = True
    precision: int | None = None
    scale: int | None = None
    length: int | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_row_type(cls, entry: dict[str, Any]) -> "ColumnDescriptor":
        known = {"name", "type", "nullable", "precision", "scale", "length"}
        return cls(
            name=entry["name"],
            type=str(entry.get("type") or "text").lower(),
            nullable=entry.get("nullable", True),
            precision=entry.get("precision"),
            scale=entry.get("scale"),
            length=entry.get("length"),
            extra={k: v for k, v in entry.items() if k not in known},
        )


def parse_row_type(row_type: Iterable[dict[str, Any]] | None) -> list[ColumnDescriptor]:
    """Build column descriptors from a ``rowType`` list."""
    return [ColumnDescriptor.from_row_type(entry) for entry in row_type or []]


def _fixed(value: str, column: ColumnDescriptor) -> int | Decimal:
    if column.scale:
        return Decimal(value)
    try:
        return int(value)
    except ValueError:
        return Decimal(value)


def _boolean(value: str, column: ColumnDescriptor) -> bool:
    return value.strip().lower() in ("true", "1")


def _date(value: str, column: ColumnDescriptor) -> datetime.date:
    return datetime.date(1970, 1, 1) + datetime.timedelta(days=int(value))


def _time(value: str, column: ColumnDescriptor) -> datetime.time:
    seconds = Decimal(value)
    micros = int(seconds * 1_000_000)
    return (datetime.datetime.min + datetime.timedelta(microseconds=micros)).time()


def _epoch(seconds: str) -> datetime.datetime:
    return EPOCH + datetime.timedelta(microseconds=int(Decimal(seconds) * 1_000_000))


def _timestamp_ntz(value: str, column: ColumnDescriptor) -> datetime.datetime:
    return _epoch(value).replace(tzinfo=None)


def _timestamp_ltz(value: str, column: ColumnDescriptor) -> datetime.datetime:
    return _epoch(value)


def _timestamp_tz(value: str, column: ColumnDescriptor) -> datetime.datetime:
    # "<epoch seconds> <offset minutes + 1440>"
    seconds, _, offset = value.partition(" ")
    ts = _epoch(seconds)
    if not offset:
        return ts
    tz = datetime.timezone(datetime.timedelta(minutes=int(offset) - 1440))
    return ts.astimezone(tz)


def _json(value: str, column: ColumnDescriptor) -> Any:
    return json.loads(value)


def _binary(value: str, column: ColumnDescriptor) -> bytes:
    return bytes.fromhex(value)


CONVERTERS: dict[str, Callable[[str, ColumnDescriptor], Any]] = {
    "fixed": _fixed,
    "real": lambda value, column: float(value),
    "boolean": _boolean,
    "date": _date,
    "time": _time,
    "timestamp_ntz": _timestamp_ntz,
    "timestamp_ltz": _timestamp_ltz,
    "timestamp_tz": _timestamp_tz,
    "variant": _json,
    "object": _json,
    "array": _json,
    "binary": _binary,
}


def convert_value(value: Any, column: ColumnDescriptor) -> Any:
    """Convert one string-encoded SQL API value according to its column type.

    ``None`` and non-string values pass through unchanged, as do types without
    a converter (``text`` and anything unknown).
    """
    if value is None or not isinstance(value, str):
        return value
    converter = CONVERTERS.get(column.type)
    if converter is None:
        return value
    return converter(value, column)


def decode_row(
    raw: list[Any], columns: list[ColumnDescriptor], convert: bool = False
) -> Row:
    if len(raw) != len(columns):
        raise RowShapeError(expected=len(columns), actual=len(raw))
    if convert:
        return {col.name: convert_value(v, col) for col, v in zip(columns, raw)}
    return {col.name: v for col, v in zip(columns, raw)}


def decode_rows(
    data: Iterable[list[Any]] | None,
    columns: list[ColumnDescriptor],
    convert: bool = False,
) -> list[Row]:
    """Map raw positional rows onto column names, preserving row order.

    Args:
        data: Raw rows from a partition's ``data`` field
        columns: Column descriptors from ``rowType``
        convert: Convert string-encoded values to Python types

    Raises:
        RowShapeError: If a row's length differs from the number of columns
    """
    return [decode_row(raw, columns, convert) for raw in data or []]
