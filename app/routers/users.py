# app/routers/users.py
from fastapi import APIRouter, Depends, Request

from app.core.action_log import log_success
from app.core.auth import require_auth
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.user import UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["Users"])


# -------- Self profile --------


@router.get("/", response_model=UserRead)
def get_user(
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Return the authenticated user's profile.

    Auth:
      - Requires a valid access token.
    """
    profile = handlers.get_user_service().get_user(current_user)
    log_success(request, "get_user", "Get user info success", current_user.id)
    return profile


@router.put("/", response_model=MessageResponse)
def update_user(
    payload: UserUpdate,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Update the authenticated user's profile.

    Editable: name, email, phone, address.
    """
    handlers.get_user_service().update_user(current_user, payload)
    log_success(request, "update_user", "User info updated", current_user.id)
    return {"message": "Updated user info successful"}
