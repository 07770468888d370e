# app/core/auth.py
import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.cookies import ACCESS_COOKIE
from app.core.errors import AppError
from app.core.handlers_config import HandlersConfig, get_handlers
from app.core.tokens import InvalidTokenError
from app.models.user import User

# HTTP Bearer scheme:
# - auto_error=False => a missing Authorization header does not raise,
#   the access_token cookie is checked first anyway.
bearer_scheme = HTTPBearer(auto_error=False)


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def _resolve_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    handlers: HandlersConfig,
) -> User:
    """
    Resolve the current user from the access token.

    Flow:
      1. Read the access_token cookie (or a Bearer header).
      2. Verify the JWT and take its user_id claim.
      3. Load the user row.

    Raises:
        HTTPException(401): token missing or invalid.
        HTTPException(500): user row could not be loaded.
    """
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Couldn't find token",
        )

    try:
        claims = handlers.tokens.validate_access_token(token)
        user_id = uuid.UUID(claims["user_id"])
    except (InvalidTokenError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    try:
        return handlers.get_user_service().get_user_by_id(user_id)
    except AppError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Couldn't get user info",
        )


def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    handlers: HandlersConfig = Depends(get_handlers),
) -> User:
    """
    Enforce authentication.

    Returns:
        The authenticated User.
    """
    return _resolve_user(request, credentials, handlers)


def optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    handlers: HandlersConfig = Depends(get_handlers),
) -> User | None:
    """Like `require_auth`, but anonymous or broken sessions yield None."""
    try:
        return _resolve_user(request, credentials, handlers)
    except HTTPException:
        return None


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Enforce admin role.

    Raises:
        HTTPException(403): if role is not admin.
    """
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access Denied",
        )
    return user
