from __future__ import annotations

from fastapi import Depends, Header

from api.deps import get_config
from api.errors import ApiError
from snowball.core.config import Config


def _bearer(authorization: str | None) -> str:
    if not authorization:
        raise ApiError(code="auth.missing_token", message="Missing bearer token", status=401)

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise ApiError(code="auth.invalid_header", message="Invalid authorization header", status=401)
    return token.strip()


def require_bearer_token(
    authorization: str | None = Header(default=None, alias="Authorization"),
    config: Config = Depends(get_config),
) -> None:
    """Guard for backtest routes. An empty `api.auth_token` leaves them open."""

    expected = config.api.auth_token
    if not expected:
        return

    if _bearer(authorization) != expected:
        raise ApiError(code="auth.invalid_token", message="Invalid bearer token", status=401)


AuthDep = Depends(require_bearer_token)
