"""Convert collected rows into a pandas DataFrame."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .rowtype import ColumnDescriptor, Row

if TYPE_CHECKING:
    import pandas as pd


def rows_to_dataframe(
    rows: list[Row], columns: list[ColumnDescriptor] | None = None
) -> "pd.DataFrame":
    """Build a DataFrame from decoded rows.

    Column order follows ``columns`` when given, otherwise the key order of
    the first row. An empty result still yields the described columns.

    Args:
        rows: Rows returned by ``StatementClient.execute_and_collect``
        columns: Column descriptors from the statement's ``rowType``

    Returns:
        A DataFrame with one row per record
    """
    try:
        import pandas as pd
    except ImportError as e:
        raise ImportError(
            "pandas is required for DataFrame conversion. "
            "Install it with: pip install snowpager[pandas]"
        ) from e

    if columns is not None:
        names = [col.name for col in columns]
    elif rows:
        names = list(rows[0])
    else:
        names = []

    return pd.DataFrame.from_records(rows, columns=names)
