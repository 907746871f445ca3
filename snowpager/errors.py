"""Exception types raised by snowpager.

Every failure propagates to the caller. The client logs the HTTP status and
body before raising, but never retries or returns partial results.
"""

from __future__ import annotations

from dataclasses import dataclass


class SnowpagerError(Exception):
    """Base class for all snowpager errors."""


@dataclass
class ConfigurationError(SnowpagerError):
    """Raised when a required setting is missing or malformed."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class SigningError(SnowpagerError):
    """Raised when the private key is unavailable or signing fails."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class StatementQueryFailed(SnowpagerError):
    """Raised when the statement submission returns a non-200 status."""

    status_code: int
    body: str

    def __str__(self) -> str:
        return f"Statement query failed with HTTP {self.status_code}: {self.body}"


@dataclass
class PartitionQueryFailed(SnowpagerError):
    """Raised when fetching a result partition returns a non-200 status."""

    status_code: int
    body: str
    partition: int | None = None

    def __str__(self) -> str:
        return (
            f"Partition {self.partition} query failed with HTTP "
            f"{self.status_code}: {self.body}"
        )


@dataclass
class RowShapeError(SnowpagerError):
    """Raised when a raw row does not have one value per column."""

    expected: int
    actual: int

    def __str__(self) -> str:
        return f"Row has {self.actual} values but {self.expected} columns were described"
