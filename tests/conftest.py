from pathlib import Path
from typing import Iterator

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from snowpager import Credentials, ExecutionContext

FIXED_NOW = 1_723_420_800  # 2024-08-12T00:00:00Z


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(private_key: rsa.RSAPrivateKey) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture
def key_path(tmp_path: Path, private_key_pem: bytes) -> Path:
    path = tmp_path / "rsa_key.p8"
    path.write_bytes(private_key_pem)
    return path


@pytest.fixture
def credentials(key_path: Path) -> Credentials:
    return Credentials(
        account_id="MYORG-ACCT",
        region="eu-central-1",
        principal_name="SNOWFLAKE_USER",
        signing_key=str(key_path),
        public_key_fingerprint="SHA256:keyfingerprint",
    )


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(warehouse="ENGINEERING_WH", role="DATA_ANALYST")


@pytest.fixture
def fixed_now() -> int:
    return FIXED_NOW


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW + 0.75


@pytest.fixture
def emulator_client(private_key: rsa.RSAPrivateKey) -> Iterator:
    """Starlette test client for an emulator with 2-row partitions."""
    from starlette.testclient import TestClient

    from snowpager.emulator import StatementManager, Warehouse, create_app

    warehouse = Warehouse(":memory:")
    app = create_app(
        warehouse=warehouse,
        statement_manager=StatementManager(partition_size=2),
        public_key=private_key.public_key(),
    )
    with TestClient(app) as client:
        yield client
    warehouse.close()
