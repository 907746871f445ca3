import pytest

from snowpager.emulator import StatementManager


@pytest.fixture
def statement_manager():
    """Fixture to create a fresh StatementManager with 3-row partitions."""
    return StatementManager(max_statements=3, partition_size=3)


def test_partitioning(statement_manager):
    stmt = statement_manager.add_statement("SELECT", [], [[i] for i in range(7)])

    assert stmt.get_partition_count() == 3
    assert stmt.get_partition(0) == [[0], [1], [2]]
    assert stmt.get_partition(2) == [[6]]
    assert [p["rowCount"] for p in stmt.result_meta()["partitionInfo"]] == [3, 3, 1]


def test_empty_result_has_one_partition(statement_manager):
    stmt = statement_manager.add_statement("SELECT", [], [])
    assert stmt.get_partition_count() == 1
    assert stmt.get_partition(0) == []


def test_get_statement(statement_manager):
    stmt = statement_manager.add_statement("SELECT 1", [], [["1"]], warehouse="WH", role="R")
    found = statement_manager.get_statement(stmt.handle)
    assert found is stmt
    assert found.warehouse == "WH"
    assert statement_manager.get_statement("missing") is None


def test_oldest_statements_are_evicted(statement_manager):
    handles = [statement_manager.add_statement(f"SELECT {i}", [], []).handle for i in range(4)]

    assert len(statement_manager) == 3
    assert statement_manager.get_statement(handles[0]) is None
    assert statement_manager.get_statement(handles[3]) is not None


def test_partition_size_from_env(monkeypatch):
    monkeypatch.setenv("SNOWPAGER_PARTITION_SIZE", "5")
    assert StatementManager().partition_size == 5
