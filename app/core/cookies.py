# app/core/cookies.py
from datetime import datetime, timedelta, timezone

from fastapi import Response

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
GUEST_SESSION_COOKIE = "guest_session_id"
GUEST_SESSION_TTL = timedelta(days=7)


def _max_age(expires_at: datetime) -> int:
    return max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))


def set_token_cookies(
    response: Response,
    access_token: str,
    access_expires_at: datetime,
    refresh_token: str,
    refresh_expires_at: datetime,
    secure: bool = True,
) -> None:
    """Attach both session cookies; each expires with its token."""
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=_max_age(access_expires_at),
        expires=access_expires_at,
        path="/",
        httponly=True,
        secure=secure,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=_max_age(refresh_expires_at),
        expires=refresh_expires_at,
        path="/",
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def clear_token_cookies(response: Response, secure: bool = True) -> None:
    """Overwrite both cookies with empty values that expired an hour ago."""
    expired = datetime.now(timezone.utc) - timedelta(hours=1)
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.set_cookie(
            name,
            "",
            max_age=0,
            expires=expired,
            path="/",
            httponly=True,
            secure=secure,
            samesite="lax",
        )


def set_guest_session_cookie(response: Response, session_id: str, secure: bool = True) -> None:
    """Guest cart session; lives as long as the cart itself."""
    response.set_cookie(
        GUEST_SESSION_COOKIE,
        session_id,
        max_age=int(GUEST_SESSION_TTL.total_seconds()),
        path="/",
        httponly=True,
        secure=secure,
        samesite="lax",
    )
