"""Host request handler that serves collected query results as JSON.

Each named query is a statement template with its own warehouse and role.
``GET /statements/{name}`` converts the request's query parameters to the
types the query declares, renders the template, runs it through a
``StatementClient`` and returns every row.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from .client import StatementClient
from .config import ExecutionContext
from .errors import (
    PartitionQueryFailed,
    RowShapeError,
    SigningError,
    SnowpagerError,
    StatementQueryFailed,
)

try:
    from starlette.applications import Starlette
    from starlette.concurrency import run_in_threadpool
    from starlette.middleware import Middleware
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.requests import Request
    from starlette.responses import JSONResponse
    from starlette.routing import Route
except ImportError as e:
    raise ImportError(
        "Optional dependencies for the server are not installed. "
        "Install them with: pip install snowpager[server]"
    ) from e

if TYPE_CHECKING:
    from starlette.responses import Response

logger = logging.getLogger(__name__)


_PLACEHOLDER = re.compile(r"\{(\w+)\}")

# Converted values are rendered with str(); every type here has a textual
# form drawn from digits, letters, spaces and "+-:.".
PARAM_TYPES: dict[str, Callable[[str], Any]] = {
    "date": date.fromisoformat,
    "timestamp": datetime.fromisoformat,
    "int": int,
    "number": Decimal,
}


@dataclass
class HandlerError(Exception):
    status_code: int
    code: str
    message: str


@dataclass(frozen=True)
class QueryDefinition:
    """A statement template bound to the warehouse and role it runs under.

    ``params`` maps placeholder names to a type in ``PARAM_TYPES``. Only
    declared ``{name}`` placeholders are substituted; any other braces in the
    statement are left as written.
    """

    name: str
    statement: str
    context: ExecutionContext
    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for param, type_name in self.params.items():
            if type_name not in PARAM_TYPES:
                raise ValueError(
                    f"Query {self.name!r} parameter {param!r} has unsupported "
                    f"type {type_name!r}; expected one of {sorted(PARAM_TYPES)}"
                )

    def render(self, params: Mapping[str, str]) -> str:
        values: dict[str, str] = {}
        for param, type_name in self.params.items():
            raw = params.get(param)
            if raw is None:
                raise HandlerError(
                    status_code=400,
                    code="missing_parameter",
                    message=f"Query {self.name!r} requires parameter {param!r}",
                )
            try:
                values[param] = str(PARAM_TYPES[type_name](raw))
            except (ValueError, TypeError, ArithmeticError):
                raise HandlerError(
                    status_code=400,
                    code="invalid_parameter",
                    message=f"Parameter {param!r} is not a valid {type_name}",
                ) from None

        return _PLACEHOLDER.sub(
            lambda m: values.get(m.group(1), m.group(0)), self.statement
        )


def load_queries(path: str | Path) -> dict[str, QueryDefinition]:
    """Load query definitions from a JSON file.

    The file maps query names to ``{"statement", "warehouse", "role"}`` with
    an optional ``"params"`` object of placeholder name to type name.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return {
        name: QueryDefinition(
            name=name,
            statement=entry["statement"],
            context=ExecutionContext(warehouse=entry["warehouse"], role=entry["role"]),
            params=entry.get("params", {}),
        )
        for name, entry in raw.items()
    }


def _status_for(error: SnowpagerError) -> int:
    if isinstance(error, (StatementQueryFailed, PartitionQueryFailed, RowShapeError)):
        return 502
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Converts handler and library errors into JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except HandlerError as e:
            return JSONResponse(
                {"code": e.code, "message": e.message, "success": False},
                status_code=e.status_code,
            )
        except SnowpagerError as e:
            logger.error("Query failed: %s", e)
            code = "signing_failed" if isinstance(e, SigningError) else "warehouse_error"
            return JSONResponse(
                {"code": code, "message": str(e), "success": False},
                status_code=_status_for(e),
            )


async def run_query(request: Request) -> JSONResponse:
    """Run a named query and return its rows.

    GET /statements/{name}
    """
    client: StatementClient = request.app.state.client
    queries: dict[str, QueryDefinition] = request.app.state.queries

    name = request.path_params["name"]
    query = queries.get(name)
    if query is None:
        raise HandlerError(
            status_code=404, code="unknown_query", message=f"Query {name!r} not found"
        )

    statement = query.render(request.query_params)
    rows = await run_in_threadpool(client.execute_and_collect, statement, query.context)
    return JSONResponse(rows)


async def list_queries(request: Request) -> JSONResponse:
    queries: dict[str, QueryDefinition] = request.app.state.queries
    return JSONResponse(
        {
            name: {
                "warehouse": q.context.warehouse,
                "role": q.context.role,
                "params": dict(q.params),
            }
            for name, q in queries.items()
        }
    )


def create_app(
    client: StatementClient,
    queries: Mapping[str, QueryDefinition],
    debug: bool = False,
) -> Starlette:
    routes = [
        Route("/statements", list_queries, methods=["GET"]),
        Route("/statements/{name}", run_query, methods=["GET"]),
    ]
    app = Starlette(
        debug=debug,
        routes=routes,
        middleware=[Middleware(ErrorHandlingMiddleware)],
    )
    app.state.client = client
    app.state.queries = dict(queries)
    return app
