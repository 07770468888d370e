# app/routers/admin.py
from fastapi import APIRouter, Depends, Request

from app.core.action_log import log_success
from app.core.auth import require_admin
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.user import PromoteUserRequest

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/user/promote", response_model=MessageResponse)
def promote_user(
    payload: PromoteUserRequest,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Grant the admin role to another user (admin only).
    """
    handlers.get_user_service().promote_user_to_admin(admin, payload.user_id)
    log_success(request, "promote_user", f"Promoted user {payload.user_id} to admin", admin.id)
    return {"message": "User promoted to admin"}
