"""FastAPI dependencies: get_current_user, require_admin_user.

Usage in any protected router:
    from src.mp_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: CurrentUser = Depends(get_current_user)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from src.mp_common.errors import ForbiddenError, InvalidCredentialsError
from src.mp_gateway.auth.context import CurrentUser
from src.mp_gateway.auth.jwt_handler import decode_token

bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    """Validate the Bearer token and return the caller's identity.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    return CurrentUser(id=str(payload["sub"]), email=payload.get("email"))


async def require_admin_user(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Verify the caller is a configured operator (settings.ADMIN_USER_IDS)."""
    if current_user.id not in settings.ADMIN_USER_IDS:
        raise ForbiddenError("Operator account required")
    return current_user
