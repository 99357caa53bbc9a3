"""JWT access tokens identifying the caller address.

HS256 (symmetric HMAC) with one shared JWT_SECRET. The wallet sign-in service
issues tokens with create_access_token once it has verified that the holder
controls the address; this API only verifies them.

Claims:
    sub   caller address, lowercase
    role  Role value (TRADER or OWNER)
    type  always "access"
    iat / exp

No token revocation: a token is valid until it expires.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.pm_common.enums import Role
from src.pm_common.errors import InvalidCredentialsError


def create_access_token(address: str, role: Role = Role.TRADER) -> str:
    """Issue an access token for ``address`` (default lifetime: 30 min)."""
    now = datetime.now(UTC)
    payload = {
        "sub": address.lower(),
        "role": Role(role).value,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM))


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: bad signature, expired, wrong type or no subject.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],  # explicit list, no algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidCredentialsError()
    return payload
