"""Client for the Snowflake SQL REST API statement endpoints.

Implements the client side of:
    POST /api/v2/statements - Submit a statement, receive partition 0 inline
    GET /api/v2/statements/{handle}?partition=n - Fetch partition n

Every request carries a freshly issued key-pair JWT. Requests are issued
sequentially and any non-200 response is logged and raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Self

import httpx

from .auth import TOKEN_TYPE, TokenIssuer
from .config import Credentials, ExecutionContext
from .errors import PartitionQueryFailed, StatementQueryFailed
from .rowtype import ColumnDescriptor, Row, decode_rows, parse_row_type

STATEMENTS_PATH = "/api/v2/statements"


@dataclass
class StatementResult:
    """Outcome of a statement submission.

    Attributes:
        statement_handle: Opaque handle addressing the result partitions
        columns: Column descriptors from ``resultSetMetaData.rowType``
        partition_count: Number of result partitions
        rows: Decoded rows of partition 0
    """

    statement_handle: str
    columns: list[ColumnDescriptor]
    partition_count: int
    rows: list[Row] = field(default_factory=list)


class StatementClient:
    """Runs statements through the SQL API and collects every result row.

    Args:
        credentials: Service principal used to sign tokens
        http_client: ``httpx.Client`` to send requests with. The client only
            closes clients it created itself.
        token_issuer: Overrides the issuer built from ``credentials``
        base_url: Overrides ``https://{account}.{region}.snowflakecomputing.com``
        logger: Logger for request and failure messages
        timeout: Timeout for the HTTP client built when none is given
        convert_values: Convert string-encoded values by column type
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        http_client: httpx.Client | None = None,
        token_issuer: TokenIssuer | None = None,
        base_url: str | None = None,
        logger: logging.Logger | None = None,
        timeout: float | None = None,
        convert_values: bool = False,
    ) -> None:
        self._credentials = credentials
        self._token_issuer = token_issuer or TokenIssuer(credentials)
        self._base_url = (base_url or f"https://{credentials.host}").rstrip("/")
        self._logger = logger or logging.getLogger(__name__)
        self._convert_values = convert_values

        self._owns_client = http_client is None
        if http_client is None:
            http_client = (
                httpx.Client(timeout=timeout) if timeout is not None else httpx.Client()
            )
        self._http = http_client

    @property
    def statements_url(self) -> str:
        return f"{self._base_url}{STATEMENTS_PATH}"

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Snowflake-Authorization-Token-Type": TOKEN_TYPE,
            "Authorization": f"Bearer {self._token_issuer.issue_token()}",
        }

    def submit_statement(self, query: str, context: ExecutionContext) -> StatementResult:
        """Submit ``query`` and decode the inline first partition.

        The query is sent as-is; no escaping or parameter binding happens here.

        Raises:
            StatementQueryFailed: On any non-200 response
            SigningError: If no token could be issued
        """
        body = {
            "statement": query,
            "warehouse": context.warehouse,
            "role": context.role,
        }
        self._logger.debug(
            "Submitting statement (warehouse=%s, role=%s)", context.warehouse, context.role
        )
        response = self._http.post(self.statements_url, json=body, headers=self._headers())

        if response.status_code != 200:
            self._logger.error(
                "Statement query failed: %s %s", response.status_code, response.text
            )
            raise StatementQueryFailed(status_code=response.status_code, body=response.text)

        payload = response.json()
        meta = payload.get("resultSetMetaData") or {}
        columns = parse_row_type(meta.get("rowType"))
        # partitionInfo may be omitted when the whole result fits in partition 0
        partition_count = len(meta.get("partitionInfo") or []) or 1

        result = StatementResult(
            statement_handle=payload["statementHandle"],
            columns=columns,
            partition_count=partition_count,
            rows=decode_rows(payload.get("data"), columns, self._convert_values),
        )
        self._logger.debug(
            "Statement %s returned %d partition(s)",
            result.statement_handle,
            result.partition_count,
        )
        return result

    def fetch_partition(
        self,
        statement_handle: str,
        partition_index: int,
        columns: list[ColumnDescriptor],
    ) -> list[Row]:
        """Fetch and decode one result partition.

        Raises:
            PartitionQueryFailed: On any non-200 response
            SigningError: If no token could be issued
        """
        self._logger.debug(
            "Fetching partition %d of statement %s", partition_index, statement_handle
        )
        response = self._http.get(
            f"{self.statements_url}/{statement_handle}",
            params={"partition": partition_index},
            headers=self._headers(),
        )

        if response.status_code != 200:
            self._logger.error(
                "Partition query failed: %s %s", response.status_code, response.text
            )
            raise PartitionQueryFailed(
                status_code=response.status_code,
                body=response.text,
                partition=partition_index,
            )

        payload: dict[str, Any] = response.json()
        return decode_rows(payload.get("data"), columns, self._convert_values)

    def execute_and_collect(self, query: str, context: ExecutionContext) -> list[Row]:
        """Run ``query`` and return the rows of every partition in order.

        Partitions are fetched one at a time in ascending order. A failure on
        any partition raises and discards the rows gathered so far.
        """
        result = self.submit_statement(query, context)
        rows = list(result.rows)

        for partition_index in range(1, result.partition_count):
            rows.extend(
                self.fetch_partition(
                    result.statement_handle, partition_index, result.columns
                )
            )

        return rows

    # Decomposed form for callers that drive partitions themselves
    get_query_partitions = submit_statement
    get_partition_data = fetch_partition
    get_query_results = execute_and_collect
