# app/routers/auth.py
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from app.core.action_log import log_success
from app.core.cookies import REFRESH_COOKIE, clear_token_cookies, set_token_cookies
from app.core.handlers_config import HandlersConfig, get_handlers
from app.core.tokens import TokenPair
from app.schemas.auth import SignInRequest, SignUpRequest
from app.schemas.common import MessageResponse

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_cookies(response: Response, tokens: TokenPair, handlers: HandlersConfig) -> None:
    set_token_cookies(
        response,
        tokens.access_token,
        tokens.access_expires_at,
        tokens.refresh_token,
        tokens.refresh_expires_at,
        secure=handlers.settings.COOKIE_SECURE,
    )


# -------- Local accounts --------


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def sign_up(
    payload: SignUpRequest,
    request: Request,
    response: Response,
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Register a local account and sign it in.

    Sets access_token and refresh_token cookies.
    """
    result = handlers.get_auth_service().sign_up(payload)
    _set_cookies(response, result.tokens, handlers)
    log_success(request, "signup", "Local signup success", result.user_id)
    return {"message": "Signup successful"}


@router.post("/signin", response_model=MessageResponse)
def sign_in(
    payload: SignInRequest,
    request: Request,
    response: Response,
    handlers: HandlersConfig = Depends(get_handlers),
):
    result = handlers.get_auth_service().sign_in(payload)
    _set_cookies(response, result.tokens, handlers)
    log_success(request, "signin", "Local signin success", result.user_id)
    return {"message": "Signin successful"}


# -------- Sessions --------


@router.post("/signout", response_model=MessageResponse)
def sign_out(
    request: Request,
    response: Response,
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    End the current session.

    Google sessions are redirected (302) to Google's revoke endpoint
    after the cookies are cleared.
    """
    result = handlers.get_auth_service().sign_out(request.cookies.get(REFRESH_COOKIE))
    secure = handlers.settings.COOKIE_SECURE
    log_success(request, "signout", f"Signout success ({result.provider})", result.user_id)

    if result.revoke_url:
        redirect = RedirectResponse(result.revoke_url, status_code=status.HTTP_302_FOUND)
        clear_token_cookies(redirect, secure=secure)
        return redirect

    clear_token_cookies(response, secure=secure)
    return {"message": "Sign out successful"}


@router.post("/refresh", response_model=MessageResponse)
def refresh_token(
    request: Request,
    response: Response,
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Issue a new access token (and a new refresh token for local accounts)."""
    result = handlers.get_auth_service().refresh(request.cookies.get(REFRESH_COOKIE))
    _set_cookies(response, result.tokens, handlers)
    log_success(request, "refresh_token", f"Refresh token success ({result.provider})", result.user_id)
    return {"message": "Token refreshed successful"}


# -------- Google OAuth --------


@router.get("/google/signin")
def google_sign_in(
    request: Request,
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Redirect to Google's consent screen."""
    url = handlers.get_auth_service().google_signin_url()
    log_success(request, "google_signin", "Redirecting to Google")
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/google/callback")
def google_callback(
    request: Request,
    state: str | None = None,
    code: str | None = None,
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    OAuth callback.

    - no usable refresh token yet: bounce back to Google with forced consent
    - otherwise: set session cookies and send the browser to the frontend
    """
    result = handlers.get_auth_service().handle_google_callback(state, code)
    if result.consent_url:
        log_success(request, "google_callback", "Re-requesting consent for offline access")
        return RedirectResponse(result.consent_url, status_code=status.HTTP_302_FOUND)

    redirect = RedirectResponse(handlers.settings.FRONTEND_URL, status_code=status.HTTP_302_FOUND)
    _set_cookies(redirect, result.auth.tokens, handlers)
    log_success(request, "google_callback", "Google signin success", result.auth.user_id)
    return redirect
