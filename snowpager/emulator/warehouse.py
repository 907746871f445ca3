"""DuckDB-backed execution for the local SQL API emulator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from threading import Lock
from typing import Any

import duckdb
import sqlglot
from sqlglot.errors import ParseError

from .types import build_row_type, format_row

STATUS_ROW_TYPE = [
    {
        "name": "status",
        "type": "text",
        "length": None,
        "precision": None,
        "scale": None,
        "nullable": True,
    }
]


@dataclass
class ExecutionError(Exception):
    """Raised when a statement cannot be parsed or executed."""

    code: str
    message: str
    sql_state: str = "42000"


@dataclass
class QueryOutput:
    row_type: list[dict[str, Any]]
    rows: list[list[Any]]


class Warehouse:
    """Runs Snowflake SQL against a DuckDB database.

    Statements are transpiled from the Snowflake dialect with sqlglot. A
    statement text holding several statements runs them in order and returns
    the result of the last one.
    """

    def __init__(self, db_file: str | None = None) -> None:
        self.db_file = db_file or os.getenv("SNOWPAGER_DB_PATH", ":memory:")
        self._conn = duckdb.connect(self.db_file)
        self._lock = Lock()

    def close(self) -> None:
        self._conn.close()

    def transpile(self, sql: str) -> list[str]:
        try:
            statements = sqlglot.transpile(sql, read="snowflake", write="duckdb")
        except ParseError as e:
            raise ExecutionError(code="001003", message=str(e)) from None
        statements = [s for s in statements if s.strip()]
        if not statements:
            raise ExecutionError(code="000900", message="Empty SQL statement.")
        return statements

    def execute(self, sql: str) -> QueryOutput:
        statements = self.transpile(sql)

        with self._lock:
            relation = None
            try:
                for statement in statements:
                    relation = self._conn.sql(statement)
                if relation is None:
                    return QueryOutput(
                        row_type=STATUS_ROW_TYPE,
                        rows=[["Statement executed successfully."]],
                    )
                row_type = build_row_type(relation.columns, relation.types)
                rows = [format_row(row) for row in relation.fetchall()]
            except duckdb.Error as e:
                raise ExecutionError(code="000002", message=str(e)) from None

        return QueryOutput(row_type=row_type, rows=rows)
