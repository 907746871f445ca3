"""Tests for the host request handler."""

from __future__ import annotations

import json
from dataclasses import replace

import httpx
import pytest
from starlette.testclient import TestClient

from snowpager import ExecutionContext, StatementClient
from snowpager.server import QueryDefinition, create_app, load_queries


@pytest.fixture
def queries():
    return {
        "recent": QueryDefinition(
            name="recent",
            statement="SELECT n FROM numbers WHERE n > {min} ORDER BY n",
            context=ExecutionContext("DATON_WAREHOUSE", "DATA_ANALYST"),
            params={"min": "int"},
        ),
        "one": QueryDefinition(
            name="one",
            statement="SELECT 1 AS x",
            context=ExecutionContext("ENGINEERING_WH", "DATA_ANALYST"),
        ),
    }


def mock_client(credentials, handler) -> StatementClient:
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return StatementClient(credentials, http_client=http)


def test_runs_named_query_against_emulator(credentials, emulator_client, context, queries):
    client = StatementClient(
        credentials, http_client=emulator_client, base_url="http://testserver"
    )
    client.execute_and_collect(
        "CREATE TABLE numbers (n INTEGER); INSERT INTO numbers VALUES (1), (2), (3), (4)",
        context,
    )

    with TestClient(create_app(client, queries)) as host:
        response = host.get("/statements/recent?min=1")

    assert response.status_code == 200
    assert response.json() == [{"n": "2"}, {"n": "3"}, {"n": "4"}]


def test_query_context_is_sent(credentials, queries):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "statementHandle": "h",
                "resultSetMetaData": {"rowType": [{"name": "x"}], "partitionInfo": [{}]},
                "data": [["1"]],
            },
        )

    with TestClient(create_app(mock_client(credentials, handler), queries)) as host:
        assert host.get("/statements/one").json() == [{"x": "1"}]

    assert seen == [
        {"statement": "SELECT 1 AS x", "warehouse": "ENGINEERING_WH", "role": "DATA_ANALYST"}
    ]


def test_unknown_query(credentials, queries):
    app = create_app(mock_client(credentials, lambda r: httpx.Response(500)), queries)
    with TestClient(app) as host:
        response = host.get("/statements/nope")

    assert response.status_code == 404
    assert response.json()["code"] == "unknown_query"


def test_missing_parameter(credentials, queries):
    app = create_app(mock_client(credentials, lambda r: httpx.Response(500)), queries)
    with TestClient(app) as host:
        response = host.get("/statements/recent")

    assert response.status_code == 400
    assert response.json()["code"] == "missing_parameter"
    assert "min" in response.json()["message"]


@pytest.mark.parametrize(
    "value",
    [
        "0 UNION ALL SELECT s FROM secrets",
        "0; DROP TABLE secrets",
        "1)--",
    ],
)
def test_parameter_that_fails_conversion_is_rejected(credentials, queries, value):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(500)

    with TestClient(create_app(mock_client(credentials, handler), queries)) as host:
        response = host.get("/statements/recent", params={"min": value})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_parameter"
    assert seen == []


def test_injected_value_never_reaches_warehouse(credentials, emulator_client, context, queries):
    client = StatementClient(
        credentials, http_client=emulator_client, base_url="http://testserver"
    )
    client.execute_and_collect(
        "CREATE TABLE numbers (n INTEGER); INSERT INTO numbers VALUES (1), (2); "
        "CREATE TABLE secrets (s VARCHAR); INSERT INTO secrets VALUES ('hunter2')",
        context,
    )

    with TestClient(create_app(client, queries)) as host:
        response = host.get(
            "/statements/recent", params={"min": "0 UNION ALL SELECT s FROM secrets"}
        )
        assert response.status_code == 400

        dropped = host.get("/statements/recent", params={"min": "0; DROP TABLE secrets"})
        assert dropped.status_code == 400

    assert client.execute_and_collect("SELECT s FROM secrets", context) == [{"s": "hunter2"}]


def test_render_converts_declared_types():
    query = QueryDefinition(
        name="daily",
        statement="SELECT * FROM t WHERE d >= '{since}' AND n > {min} AND x < {cap}",
        context=ExecutionContext("W", "R"),
        params={"since": "date", "min": "int", "cap": "number"},
    )

    assert query.render({"since": "2024-08-12", "min": " 7 ", "cap": "1.50"}) == (
        "SELECT * FROM t WHERE d >= '2024-08-12' AND n > 7 AND x < 1.50"
    )


def test_render_leaves_other_braces_alone():
    query = QueryDefinition(
        name="literal",
        statement="SELECT {'a': 1} AS o, '{undeclared}' AS u",
        context=ExecutionContext("W", "R"),
    )

    assert query.render({"undeclared": "x"}) == "SELECT {'a': 1} AS o, '{undeclared}' AS u"


def test_unsupported_parameter_type():
    with pytest.raises(ValueError, match="unsupported type 'str'"):
        QueryDefinition(
            name="bad",
            statement="SELECT '{name}'",
            context=ExecutionContext("W", "R"),
            params={"name": "str"},
        )


def test_warehouse_failure_maps_to_502(credentials, queries):
    app = create_app(
        mock_client(credentials, lambda r: httpx.Response(422, text="compilation error")),
        queries,
    )
    with TestClient(app) as host:
        response = host.get("/statements/one")

    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "warehouse_error"
    assert "compilation error" in body["message"]
    assert body["success"] is False


def test_signing_failure_maps_to_500(credentials, queries, tmp_path):
    creds = replace(credentials, signing_key=str(tmp_path / "missing.p8"))
    app = create_app(mock_client(creds, lambda r: httpx.Response(200)), queries)
    with TestClient(app) as host:
        response = host.get("/statements/one")

    assert response.status_code == 500
    assert response.json()["code"] == "signing_failed"


def test_list_queries(credentials, queries):
    app = create_app(mock_client(credentials, lambda r: httpx.Response(500)), queries)
    with TestClient(app) as host:
        listed = host.get("/statements").json()

    assert listed["recent"] == {
        "warehouse": "DATON_WAREHOUSE",
        "role": "DATA_ANALYST",
        "params": {"min": "int"},
    }


def test_load_queries(tmp_path):
    path = tmp_path / "queries.json"
    path.write_text(
        json.dumps(
            {
                "daily": {
                    "statement": "SELECT * FROM t WHERE d > TO_DATE('{since}', 'YYYY-MM-DD')",
                    "warehouse": "DATON_WAREHOUSE",
                    "role": "DATA_ANALYST",
                    "params": {"since": "date"},
                }
            }
        )
    )
    queries = load_queries(path)

    assert queries["daily"].context == ExecutionContext("DATON_WAREHOUSE", "DATA_ANALYST")
    assert queries["daily"].render({"since": "2024-08-12"}).endswith(
        "TO_DATE('2024-08-12', 'YYYY-MM-DD')"
    )
