"""FastAPI dependencies: caller identity and provider webhook authentication.

Usage in any router:
    from src.pm_gateway.auth.dependencies import get_caller, require_owner

    @router.post("/pools/{pool_id}/buy")
    async def buy(caller: str = Depends(get_caller)):
        ...

The caller address is the `sub` claim of a JWT Bearer token; owner-only routes
additionally require the OWNER role claim.
"""

import hmac
from typing import Any

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from src.pm_common.enums import Role
from src.pm_common.errors import (
    InvalidCredentialsError,
    OwnerRoleRequiredError,
    UnauthorizedCallerError,
)
from src.pm_gateway.auth.jwt_handler import decode_token

bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_token_claims(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """Validate the Bearer token and return its claims.

    Raises HTTP 401 if the token is missing, invalid, or expired. The caller
    address is also put on request.state for the request log.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        claims = decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    request.state.caller = str(claims["sub"]).lower()
    return claims


async def get_caller(claims: dict[str, Any] = Depends(get_token_claims)) -> str:
    """Authenticated caller address, lowercased."""
    return str(claims["sub"]).lower()


async def require_owner(claims: dict[str, Any] = Depends(get_token_claims)) -> str:
    """Caller address of a token carrying the OWNER role.

    Raises HTTP 403 (OwnerRoleRequiredError) for any other role. The services
    still check the address against their configured owner.
    """
    if claims.get("role") != Role.OWNER.value:
        raise OwnerRoleRequiredError()
    return str(claims["sub"]).lower()


async def require_oracle_callback(
    x_oracle_secret: str | None = Header(None),
) -> None:
    """Verify the shared secret the inference provider sends on webhook callbacks.

    Callbacks are refused outright while ORACLE_CALLBACK_SECRET is unset.
    """
    expected = settings.ORACLE_CALLBACK_SECRET
    if not expected or x_oracle_secret is None:
        raise UnauthorizedCallerError("Only the inference provider can call this function")
    if not hmac.compare_digest(x_oracle_secret.encode(), expected.encode()):
        raise UnauthorizedCallerError("Only the inference provider can call this function")
