"""Statement storage for the local SQL API emulator.

Keeps executed statement results in memory, split into fixed-size partitions,
with oldest-first eviction to bound memory use.
"""

from __future__ import annotations

import os
import time
import uuid
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

DEFAULT_PARTITION_SIZE = 10000


def partition_size_from_env() -> int:
    return int(os.getenv("SNOWPAGER_PARTITION_SIZE", str(DEFAULT_PARTITION_SIZE)))


@dataclass
class StoredStatement:
    """A statement executed by the emulator.

    Attributes:
        handle: Unique identifier for the statement
        sql: The SQL statement text as submitted
        warehouse: Warehouse context (informational)
        role: Role context (informational)
        created_on: Timestamp when statement was created (ms since epoch)
        row_type: ``rowType`` metadata of the result
        result_data: Encoded result rows
        partition_size: Rows per partition
    """

    handle: str
    sql: str
    warehouse: str | None = None
    role: str | None = None
    created_on: int = field(default_factory=lambda: int(time.time() * 1000))
    row_type: list[dict[str, Any]] = field(default_factory=list)
    result_data: list[list[Any]] = field(default_factory=list)
    partition_size: int = DEFAULT_PARTITION_SIZE

    def get_partition_count(self) -> int:
        """Number of partitions; an empty result still has one."""
        if not self.result_data:
            return 1
        return (len(self.result_data) + self.partition_size - 1) // self.partition_size

    def get_partition(self, partition: int) -> list[list[Any]]:
        start = partition * self.partition_size
        return self.result_data[start:start + self.partition_size]

    def result_meta(self) -> dict[str, Any]:
        return {
            "numRows": len(self.result_data),
            "format": "jsonv2",
            "rowType": self.row_type,
            "partitionInfo": [
                {"rowCount": len(self.get_partition(i))}
                for i in range(self.get_partition_count())
            ],
        }


class StatementManager:
    """Thread-safe store of executed statements.

    Attributes:
        max_statements: Maximum number of statements to retain
        partition_size: Rows per partition for new statements
    """

    def __init__(
        self, max_statements: int = 1000, partition_size: int | None = None
    ) -> None:
        self._statements: dict[str, StoredStatement] = {}
        self._order: list[str] = []
        self.max_statements = max_statements
        self.partition_size = partition_size or partition_size_from_env()
        self._lock = Lock()

    def add_statement(
        self,
        sql: str,
        row_type: list[dict[str, Any]],
        result_data: list[list[Any]],
        warehouse: str | None = None,
        role: str | None = None,
    ) -> StoredStatement:
        stmt = StoredStatement(
            handle=str(uuid.uuid4()),
            sql=sql,
            warehouse=warehouse,
            role=role,
            row_type=row_type,
            result_data=result_data,
            partition_size=self.partition_size,
        )

        with self._lock:
            while len(self._statements) >= self.max_statements and self._order:
                oldest = self._order.pop(0)
                self._statements.pop(oldest, None)

            self._statements[stmt.handle] = stmt
            self._order.append(stmt.handle)

        return stmt

    def get_statement(self, handle: str) -> StoredStatement | None:
        with self._lock:
            return self._statements.get(handle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._statements)
