"""Command line entry point: run a statement, serve named queries, or start the emulator."""

import argparse
import json
import logging
import sys
from typing import Any

from .client import StatementClient
from .config import Credentials, ExecutionContext, base_url_from_env
from .errors import SnowpagerError


def _json_default(value: Any) -> str:
    return str(value)


def dumps_rows(rows: list[dict[str, Any]]) -> str:
    """Serialize rows as JSON, stringifying values JSON cannot represent."""
    return json.dumps(rows, default=_json_default, indent=2)


def _client_from_env(convert_values: bool = False) -> StatementClient:
    return StatementClient(
        Credentials.from_env(),
        base_url=base_url_from_env(),
        convert_values=convert_values,
    )


def cmd_query(args: argparse.Namespace) -> int:
    if args.warehouse and args.role:
        context = ExecutionContext(warehouse=args.warehouse, role=args.role)
    else:
        defaults = ExecutionContext.from_env()
        context = ExecutionContext(
            warehouse=args.warehouse or defaults.warehouse,
            role=args.role or defaults.role,
        )
    with _client_from_env(convert_values=args.convert) as client:
        rows = client.execute_and_collect(args.statement, context)
    print(dumps_rows(rows))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from uvicorn import run

    from .server import create_app, load_queries

    app = create_app(_client_from_env(), load_queries(args.queries), debug=args.debug)
    run(app, host=args.host, port=args.port)
    return 0


def cmd_emulate(args: argparse.Namespace) -> int:
    from uvicorn import run

    from .auth import load_private_key
    from .emulator import StatementManager, Warehouse, create_app

    public_key = None
    if args.public_key_from:
        public_key = load_private_key(args.public_key_from).public_key()

    app = create_app(
        warehouse=Warehouse(args.db),
        statement_manager=StatementManager(partition_size=args.partition_size),
        public_key=public_key,
        debug=args.debug,
    )
    run(app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snowpager",
        description="Run statements through the Snowflake SQL REST API.",
    )
    parser.add_argument(
        "--log-level", default="WARNING", help="Logging level (default: WARNING)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="Run a statement and print all rows as JSON")
    query.add_argument("statement", help="SQL statement text")
    query.add_argument("--warehouse", help="Warehouse (default: $SNOWPAGER_WAREHOUSE)")
    query.add_argument("--role", help="Role (default: $SNOWPAGER_ROLE)")
    query.add_argument(
        "--convert", action="store_true", help="Convert values by column type"
    )
    query.set_defaults(func=cmd_query)

    for name, func, help_text in (
        ("serve", cmd_serve, "Serve named queries over HTTP"),
        ("emulate", cmd_emulate, "Run a local SQL API emulator backed by DuckDB"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--host", type=str, default="127.0.0.1", help="Host to run the server on (default: 127.0.0.1)"
        )
        sub.add_argument(
            "--port", type=int, default=8000, help="Port to run the server on (default: 8000)"
        )
        sub.add_argument(
            "--debug", action="store_true", help="Enable debug mode (default: False)"
        )
        sub.set_defaults(func=func)

    subparsers.choices["serve"].add_argument(
        "--queries", required=True, help="JSON file of named query definitions"
    )
    emulate = subparsers.choices["emulate"]
    emulate.add_argument("--db", default=None, help="DuckDB file (default: in-memory)")
    emulate.add_argument(
        "--partition-size", type=int, default=None, help="Rows per result partition"
    )
    emulate.add_argument(
        "--public-key-from",
        default=None,
        help="Private key whose public half verifies token signatures",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    try:
        return args.func(args)
    except SnowpagerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
