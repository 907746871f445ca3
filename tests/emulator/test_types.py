import datetime
from decimal import Decimal

import pytest

from snowpager.emulator.types import build_row_type, format_row, format_value, type_name_to_snowflake
from snowpager.rowtype import ColumnDescriptor, convert_value


@pytest.mark.parametrize(
    "duck_type, expected",
    [
        ("INTEGER", "fixed"),
        ("BIGINT", "fixed"),
        ("DECIMAL(18,3)", "fixed"),
        ("DOUBLE", "real"),
        ("VARCHAR", "text"),
        ("DATE", "date"),
        ("TIMESTAMP", "timestamp_ntz"),
        ("TIMESTAMP WITH TIME ZONE", "timestamp_tz"),
        ("BOOLEAN", "boolean"),
        ("INTEGER[]", "array"),
        ("STRUCT(a INTEGER)", "object"),
        ("INTERVAL", "text"),
    ],
)
def test_type_name_to_snowflake(duck_type, expected):
    assert type_name_to_snowflake(duck_type) == expected


def test_build_row_type_decimal_precision():
    row_type = build_row_type(["a", "b"], ["DECIMAL(18,3)", "INTEGER"])
    assert row_type[0]["precision"] == 18
    assert row_type[0]["scale"] == 3
    assert row_type[1]["scale"] == 0
    assert row_type[1]["type"] == "fixed"


def test_format_row_encodes_scalars():
    assert format_row(
        [None, True, 7, Decimal("1.50"), datetime.date(1970, 1, 11), b"\x01\xff", {"k": 1}]
    ) == [None, "true", "7", "1.50", "10", "01ff", '{"k": 1}']


def test_format_timestamps():
    assert format_value(datetime.datetime(1970, 1, 1, 0, 0, 1, 500000)) == "1.500000000"
    assert format_value(datetime.time(1, 0, 0)) == "3600.000000000"
    aware = datetime.datetime(1970, 1, 1, 2, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=2)))
    assert format_value(aware) == "0.000000000 1560"


@pytest.mark.parametrize(
    "value",
    [
        datetime.date(2024, 8, 12),
        datetime.datetime(2024, 8, 12, 13, 45, 30, 123456),
        datetime.time(23, 59, 59, 5),
        datetime.datetime(1969, 12, 31, 23, 59, 59, 500000),
    ],
)
def test_encoded_temporal_values_convert_back(value):
    kinds = {
        datetime.datetime: "timestamp_ntz",
        datetime.date: "date",
        datetime.time: "time",
    }
    column = ColumnDescriptor(name="v", type=kinds[type(value)])
    assert convert_value(format_value(value), column) == value
