"""Configuration objects for the SQL API client.

Nothing here is process-wide state: callers build ``Credentials`` and
``ExecutionContext`` explicitly, or read them from ``SNOWPAGER_*``
environment variables with the ``from_env`` constructors.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .errors import ConfigurationError

DEFAULT_LIFETIME_SECONDS = 60


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigurationError(f"Environment variable {name} is not set")
    return value


@dataclass(frozen=True)
class Credentials:
    """Identity of the service principal used for key-pair authentication.

    Attributes:
        account_id: Snowflake account identifier (e.g. ``MYORG-MYACCOUNT``)
        region: Data-center/region segment of the account host name
        principal_name: Snowflake user the key pair is registered for
        public_key_fingerprint: ``SHA256:...`` fingerprint of the public key.
            Derived from the private key when empty.
        signing_key: Key handle, either a path to a PEM private key or the
            PEM text itself
        key_password: Passphrase for an encrypted private key
    """

    account_id: str
    region: str
    principal_name: str
    signing_key: str
    public_key_fingerprint: str = ""
    key_password: str | None = None

    @property
    def host(self) -> str:
        if self.region:
            return f"{self.account_id}.{self.region}.snowflakecomputing.com"
        return f"{self.account_id}.snowflakecomputing.com"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Credentials":
        env = os.environ if env is None else env
        return cls(
            account_id=_require(env, "SNOWPAGER_ACCOUNT"),
            region=env.get("SNOWPAGER_REGION", ""),
            principal_name=_require(env, "SNOWPAGER_USER"),
            signing_key=_require(env, "SNOWPAGER_PRIVATE_KEY_PATH"),
            public_key_fingerprint=env.get("SNOWPAGER_KEY_FINGERPRINT", ""),
            key_password=env.get("SNOWPAGER_PRIVATE_KEY_PASSWORD") or None,
        )


@dataclass(frozen=True)
class ExecutionContext:
    """Warehouse and role a statement runs under."""

    warehouse: str
    role: str

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ExecutionContext":
        env = os.environ if env is None else env
        return cls(
            warehouse=_require(env, "SNOWPAGER_WAREHOUSE"),
            role=_require(env, "SNOWPAGER_ROLE"),
        )


def base_url_from_env(env: Mapping[str, str] | None = None) -> str | None:
    """Return the ``SNOWPAGER_BASE_URL`` override, if any."""
    env = os.environ if env is None else env
    return env.get("SNOWPAGER_BASE_URL") or None
