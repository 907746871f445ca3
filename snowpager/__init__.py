from .auth import TokenIssuer, issue_token, load_private_key, public_key_fingerprint
from .client import StatementClient, StatementResult
from .config import Credentials, ExecutionContext
from .errors import (
    ConfigurationError,
    PartitionQueryFailed,
    RowShapeError,
    SigningError,
    SnowpagerError,
    StatementQueryFailed,
)
from .rowtype import ColumnDescriptor, Row, convert_value, decode_rows


# Lazy import for DataFrame conversion (requires pandas)
def __getattr__(name: str):
    if name == "rows_to_dataframe":
        from .frames import rows_to_dataframe
        return rows_to_dataframe
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "ColumnDescriptor",
    "ConfigurationError",
    "Credentials",
    "ExecutionContext",
    "PartitionQueryFailed",
    "Row",
    "RowShapeError",
    "SigningError",
    "SnowpagerError",
    "StatementClient",
    "StatementQueryFailed",
    "StatementResult",
    "TokenIssuer",
    "convert_value",
    "decode_rows",
    "issue_token",
    "load_private_key",
    "public_key_fingerprint",
    "rows_to_dataframe",
]
