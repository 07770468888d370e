# app/routers/categories.py
import uuid

from fastapi import APIRouter, Depends, Request, status

from app.core.action_log import log_success
from app.core.auth import require_admin
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.category import CategoryCreate, CategoryCreated, CategoryRead, CategoryUpdate
from app.schemas.common import MessageResponse

router = APIRouter(prefix="/categories", tags=["Categories"])


# -------- Public endpoints --------


@router.get("/", response_model=list[CategoryRead])
def get_all_categories(handlers: HandlersConfig = Depends(get_handlers)):
    """List every category, ordered by name."""
    return handlers.get_category_service().get_all_categories()


# -------- Admin endpoints --------


@router.post(
    "/",
    response_model=CategoryCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    payload: CategoryCreate,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    category_id = handlers.get_category_service().create_category(payload)
    log_success(request, "create_category", "Category created successful", admin.id)
    return {"message": "Category created successfully", "category_id": category_id}


@router.put("/", response_model=MessageResponse)
def update_category(
    payload: CategoryUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Update a category; its id travels in the body."""
    handlers.get_category_service().update_category(payload)
    log_success(request, "update_category", "Category updated successful", admin.id)
    return {"message": "Category updated successfully"}


@router.delete("/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_category_service().delete_category(category_id)
    log_success(request, "delete_category", "Category deleted successful", admin.id)
    return {"message": "Category deleted successfully"}
