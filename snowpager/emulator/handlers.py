"""HTTP request handlers for the emulated SQL REST API.

Handlers:
    submit_statement: POST /api/v2/statements
    get_statement_partition: GET /api/v2/statements/{handle}
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse

from .warehouse import ExecutionError

if TYPE_CHECKING:
    from starlette.requests import Request

    from .statement_manager import StatementManager, StoredStatement
    from .warehouse import Warehouse


def _error(
    code: str, message: str, status_code: int, sql_state: str = "HY000"
) -> JSONResponse:
    return JSONResponse(
        {"code": code, "message": message, "sqlState": sql_state},
        status_code=status_code,
    )


def _statement_body(stmt: "StoredStatement", partition: int) -> dict[str, Any]:
    return {
        "code": "090001",
        "sqlState": "00000",
        "message": "Statement executed successfully.",
        "statementHandle": stmt.handle,
        "createdOn": stmt.created_on,
        "statementStatusUrl": f"/api/v2/statements/{stmt.handle}",
        "resultSetMetaData": stmt.result_meta(),
        "data": stmt.get_partition(partition),
    }


def _link_headers(stmt: "StoredStatement", partition: int) -> dict[str, str]:
    """Build Link headers for a specific partition."""
    partition_count = stmt.get_partition_count()
    if partition_count <= 1:
        return {}

    url = f"/api/v2/statements/{stmt.handle}"
    links = [
        f'<{url}?partition=0>; rel="first"',
        f'<{url}?partition={partition_count - 1}>; rel="last"',
    ]
    if partition > 0:
        links.append(f'<{url}?partition={partition - 1}>; rel="prev"')
    if partition < partition_count - 1:
        links.append(f'<{url}?partition={partition + 1}>; rel="next"')

    return {"Link": ", ".join(links)}


async def submit_statement(request: "Request") -> JSONResponse:
    """Execute a statement and return partition 0 inline.

    POST /api/v2/statements

    Request Body:
        statement: SQL text
        warehouse: Warehouse context (informational)
        role: Role context (informational)
    """
    warehouse: Warehouse = request.app.state.warehouse
    statements: StatementManager = request.app.state.statement_manager

    try:
        body = await request.json()
    except json.JSONDecodeError:
        return _error("390142", "Request body is not valid JSON.", 400)
    if not isinstance(body, dict):
        return _error("390142", "Request body must be a JSON object.", 400)

    sql = body.get("statement") or ""
    if not isinstance(sql, str):
        return _error("000900", "SQL statement must be a string", 422, sql_state="42000")
    if not sql.strip():
        return _error("000900", "SQL statement is required", 422, sql_state="42000")

    try:
        output = await run_in_threadpool(warehouse.execute, sql)
    except ExecutionError as e:
        return _error(e.code, e.message, 422, sql_state=e.sql_state)

    stmt = statements.add_statement(
        sql=sql,
        row_type=output.row_type,
        result_data=output.rows,
        warehouse=body.get("warehouse"),
        role=body.get("role"),
    )
    return JSONResponse(_statement_body(stmt, 0), headers=_link_headers(stmt, 0))


async def get_statement_partition(request: "Request") -> JSONResponse:
    """Return one partition of a statement's result.

    GET /api/v2/statements/{statementHandle}

    Query Parameters:
        partition: Partition number to return (0-indexed)
    """
    statements: StatementManager = request.app.state.statement_manager
    handle = request.path_params["statementHandle"]

    stmt = statements.get_statement(handle)
    if stmt is None:
        return _error(
            "000404", f"Statement with handle {handle} not found", 404, sql_state="02000"
        )

    try:
        partition = int(request.query_params.get("partition", "0"))
    except ValueError:
        partition = -1

    partition_count = stmt.get_partition_count()
    if not 0 <= partition < partition_count:
        return _error(
            "000001",
            f"Invalid partition {request.query_params.get('partition')}. "
            f"Valid range: 0-{partition_count - 1}",
            422,
        )

    return JSONResponse(
        _statement_body(stmt, partition), headers=_link_headers(stmt, partition)
    )
