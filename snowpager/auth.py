"""Key-pair JWT generation for the Snowflake SQL REST API.

This module handles:
- Loading RSA private keys from a key handle (PEM path or PEM text)
- Computing the ``SHA256:`` public key fingerprint Snowflake registers
- Building RS256-signed compact JWTs with unpadded base64url segments
"""

from __future__ import annotations

import base64
import hashlib
import json
import time
from pathlib import Path
from typing import Any, Callable

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .config import DEFAULT_LIFETIME_SECONDS, Credentials
from .errors import SigningError

TOKEN_TYPE = "KEYPAIR_JWT"


def b64url(data: bytes) -> str:
    """Encode bytes as base64url without ``=`` padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _encode_segment(obj: dict[str, Any]) -> str:
    return b64url(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def load_private_key(
    handle: str | bytes, password: str | None = None
) -> rsa.RSAPrivateKey:
    """Load an RSA private key from a key handle.

    Args:
        handle: Path to a PEM file, or the PEM text itself
        password: Passphrase for encrypted keys

    Returns:
        The loaded RSA private key

    Raises:
        SigningError: If the key cannot be read or is not an RSA private key
    """
    if not handle:
        raise SigningError("No signing key configured")

    if isinstance(handle, bytes):
        pem = handle
    elif handle.lstrip().startswith("-----BEGIN"):
        pem = handle.encode("utf-8")
    else:
        try:
            pem = Path(handle).expanduser().read_bytes()
        except OSError as e:
            raise SigningError(f"Signing key {handle!r} is unavailable: {e}") from e

    try:
        key = serialization.load_pem_private_key(
            pem, password=password.encode("utf-8") if password else None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError(f"Signing key could not be loaded: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError("Signing key is not an RSA private key")
    return key


def public_key_fingerprint(private_key: rsa.RSAPrivateKey) -> str:
    """Return the ``SHA256:<base64>`` fingerprint of the key's public half."""
    der = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return "SHA256:" + base64.b64encode(hashlib.sha256(der).digest()).decode("ascii")


class TokenIssuer:
    """Issues short-lived RS256 bearer tokens for a service principal.

    A new token is built on every call; nothing is cached. The private key is
    loaded on first use so that a missing key surfaces as ``SigningError`` from
    the call that needed it.
    """

    def __init__(
        self,
        credentials: Credentials,
        lifetime: int = DEFAULT_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credentials = credentials
        self._lifetime = lifetime
        self._clock = clock
        self._private_key: rsa.RSAPrivateKey | None = None

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        if self._private_key is None:
            self._private_key = load_private_key(
                self._credentials.signing_key, self._credentials.key_password
            )
        return self._private_key

    @property
    def fingerprint(self) -> str:
        return self._credentials.public_key_fingerprint or public_key_fingerprint(
            self.private_key
        )

    def claims(self, now: int) -> dict[str, Any]:
        creds = self._credentials
        return {
            "iss": f"{creds.account_id}.{creds.principal_name}.{self.fingerprint}",
            "sub": f"{creds.account_id}.{creds.principal_name}",
            "iat": now,
            "exp": now + self._lifetime,
        }

    def issue_token(self) -> str:
        """Build and sign a compact JWT valid for ``lifetime`` seconds.

        Raises:
            SigningError: If the key is unavailable or signing fails
        """
        key = self.private_key
        now = int(self._clock())

        header = _encode_segment({"type": "JWT", "alg": "RS256"})
        payload = _encode_segment(self.claims(now))
        signing_input = f"{header}.{payload}"

        try:
            signature = key.sign(
                signing_input.encode("utf-8"),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Signing failed: {e}") from e

        return f"{signing_input}.{b64url(signature)}"


def issue_token(
    credentials: Credentials, clock: Callable[[], float] = time.time
) -> str:
    """Issue a single token for ``credentials``."""
    return TokenIssuer(credentials, clock=clock).issue_token()
