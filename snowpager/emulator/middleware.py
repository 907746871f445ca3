"""Key-pair JWT validation for the emulated SQL REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable

import jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..auth import TOKEN_TYPE

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        {"code": "390101", "message": message, "sqlState": "08001"},
        status_code=401,
    )


class KeyPairAuthMiddleware(BaseHTTPMiddleware):
    """Validates the bearer token on every ``/api/v2/`` request.

    Requests must send ``X-Snowflake-Authorization-Token-Type: KEYPAIR_JWT``
    and an unexpired RS256 JWT carrying an ``exp`` claim. When a public key is
    configured the token signature is verified as well.
    """

    def __init__(self, app: "ASGIApp", public_key: "RSAPublicKey | None" = None) -> None:
        super().__init__(app)
        self.public_key = public_key

    def _decode(self, token: str) -> dict[str, Any]:
        if self.public_key is None:
            return jwt.decode(
                token,
                algorithms=["RS256"],
                options={
                    "verify_signature": False,
                    "verify_exp": True,
                    "require": ["exp"],
                },
            )
        return jwt.decode(
            token, self.public_key, algorithms=["RS256"], options={"require": ["exp"]}
        )

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not request.url.path.startswith("/api/v2/"):
            return await call_next(request)

        if request.headers.get("X-Snowflake-Authorization-Token-Type") != TOKEN_TYPE:
            return _unauthorized("Unsupported authorization token type.")

        auth = request.headers.get("Authorization", "")
        scheme, _, token = auth.partition(" ")
        if scheme != "Bearer" or not token:
            return _unauthorized("Authorization header not found in the request data.")

        try:
            self._decode(token)
        except jwt.ExpiredSignatureError:
            return _unauthorized("JWT token has expired.")
        except jwt.InvalidSignatureError:
            return _unauthorized("JWT token signature is invalid.")
        except jwt.InvalidTokenError:
            return _unauthorized("JWT token is invalid.")

        return await call_next(request)
