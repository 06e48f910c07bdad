"""JWT verification for tokens issued by the hosted auth provider.

This service never issues or refreshes tokens: sign-up, sign-in and session
management belong to the auth provider. We only verify the HS256 signature
with the shared JWT_SECRET and read the ``sub`` (user id) and ``email``
claims.
"""

from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.mp_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Returns:
        Decoded claims with at minimum {"sub": ...}.

    Raises:
        InvalidCredentialsError: signature, expiry or audience check failed,
        or the token carries no subject.
    """
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if not payload.get("sub"):
        raise InvalidCredentialsError()
    return payload
