"""Type mapping and value encoding for emulator results.

Maps DuckDB column types onto Snowflake ``rowType`` entries and encodes
Python values the way the SQL API's ``jsonv2`` format does: every scalar is
a string, dates are epoch days and timestamps are epoch seconds.
"""

from __future__ import annotations

import datetime
import json
import re
from decimal import Decimal
from typing import Any

# Mapping from DuckDB base type names to Snowflake types
TYPE_MAP = {
    "TINYINT": "fixed",
    "SMALLINT": "fixed",
    "INTEGER": "fixed",
    "BIGINT": "fixed",
    "HUGEINT": "fixed",
    "UTINYINT": "fixed",
    "USMALLINT": "fixed",
    "UINTEGER": "fixed",
    "UBIGINT": "fixed",
    "DECIMAL": "fixed",
    "FLOAT": "real",
    "DOUBLE": "real",
    "VARCHAR": "text",
    "UUID": "text",
    "DATE": "date",
    "TIME": "time",
    "TIMESTAMP": "timestamp_ntz",
    "TIMESTAMP_NS": "timestamp_ntz",
    "TIMESTAMP_MS": "timestamp_ntz",
    "TIMESTAMP_S": "timestamp_ntz",
    "TIMESTAMP WITH TIME ZONE": "timestamp_tz",
    "BOOLEAN": "boolean",
    "BLOB": "binary",
    "JSON": "variant",
    "STRUCT": "object",
    "MAP": "object",
}

_DECIMAL_RE = re.compile(r"DECIMAL\((\d+),\s*(\d+)\)")

EPOCH = datetime.datetime(1970, 1, 1)


def type_name_to_snowflake(type_name: str) -> str:
    """Convert a DuckDB type name to a Snowflake type name.

    Unknown types are reported as ``text``.
    """
    type_str = str(type_name).upper().strip()
    if type_str.endswith("]"):
        return "array"
    base = type_str.split("(")[0].strip()
    return TYPE_MAP.get(base, "text")


def build_row_type(columns: list[str], types: list[Any]) -> list[dict[str, Any]]:
    """Build ``rowType`` metadata from DuckDB column names and types."""
    row_type = []
    for name, duck_type in zip(columns, types):
        type_str = str(duck_type).upper()
        precision, scale = None, None
        match = _DECIMAL_RE.match(type_str)
        if match:
            precision, scale = int(match.group(1)), int(match.group(2))
        elif type_name_to_snowflake(type_str) == "fixed":
            precision, scale = 38, 0

        row_type.append(
            {
                "name": name,
                "type": type_name_to_snowflake(type_str),
                "length": None,
                "precision": precision,
                "scale": scale,
                "nullable": True,
            }
        )
    return row_type


def _epoch_seconds(delta: datetime.timedelta) -> str:
    micros = delta // datetime.timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    seconds, fraction = divmod(abs(micros), 1_000_000)
    return f"{sign}{seconds}.{fraction:06d}000"


def format_value(value: Any) -> Any:
    """Encode a value for a ``jsonv2`` result row."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            return _epoch_seconds(value - EPOCH)
        offset = value.utcoffset() or datetime.timedelta()
        naive_utc = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        minutes = int(offset.total_seconds() // 60)
        return f"{_epoch_seconds(naive_utc - EPOCH)} {minutes + 1440}"
    if isinstance(value, datetime.date):
        return str((value - EPOCH.date()).days)
    if isinstance(value, datetime.time):
        delta = datetime.timedelta(
            hours=value.hour,
            minutes=value.minute,
            seconds=value.second,
            microseconds=value.microsecond,
        )
        return _epoch_seconds(delta)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def format_row(row: tuple[Any, ...] | list[Any]) -> list[Any]:
    return [format_value(v) for v in row]
