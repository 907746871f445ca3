"""Local emulator of the Snowflake SQL REST API.

Serves the statement endpoints the client uses, backed by DuckDB:
    POST /api/v2/statements - Execute a statement, return partition 0
    GET /api/v2/statements/{handle}?partition=n - Return partition n

Modules:
    handlers: HTTP request handlers
    middleware: Key-pair JWT validation
    routes: Route definitions
    statement_manager: Statement storage and partitioning
    types: DuckDB to Snowflake type mapping and value encoding
    warehouse: DuckDB execution with sqlglot transpilation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.middleware import Middleware

from .middleware import KeyPairAuthMiddleware
from .routes import get_sql_api_routes
from .statement_manager import StatementManager, StoredStatement
from .warehouse import ExecutionError, Warehouse

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey


def create_app(
    warehouse: Warehouse | None = None,
    statement_manager: StatementManager | None = None,
    public_key: "RSAPublicKey | None" = None,
    debug: bool = False,
) -> Starlette:
    """Create the emulator application.

    Args:
        warehouse: DuckDB warehouse to run statements on
        statement_manager: Result store; controls partition size
        public_key: Verify token signatures against this key when given
        debug: Enable Starlette debug mode
    """
    app = Starlette(
        debug=debug,
        routes=get_sql_api_routes(),
        middleware=[Middleware(KeyPairAuthMiddleware, public_key=public_key)],
    )
    app.state.warehouse = warehouse if warehouse is not None else Warehouse()
    app.state.statement_manager = (
        statement_manager if statement_manager is not None else StatementManager()
    )
    return app


__all__ = [
    "ExecutionError",
    "KeyPairAuthMiddleware",
    "StatementManager",
    "StoredStatement",
    "Warehouse",
    "create_app",
    "get_sql_api_routes",
]
