# app/routers/products.py
import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, Request, status

from app.core.action_log import log_success
from app.core.auth import optional_user, require_admin, require_auth
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.product import (
    ProductCreate,
    ProductCreated,
    ProductFilter,
    ProductRead,
    ProductUpdate,
)

router = APIRouter(prefix="/products", tags=["Products"])


def _is_admin(user: User | None) -> bool:
    return user is not None and user.role == "admin"


# -------- Catalog endpoints --------


@router.get("/", response_model=list[ProductRead])
def get_all_products(
    user: User | None = Depends(optional_user),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    List products.

    - Admins see every product.
    - Everyone else (including anonymous callers) sees active ones only.
    """
    return handlers.get_product_service().get_all_products(_is_admin(user))


@router.get("/filter", response_model=list[ProductRead])
def filter_products(
    category_id: uuid.UUID | None = None,
    is_active: bool | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    user: User | None = Depends(optional_user),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Filter products by category, active flag and price range.
    All query parameters are optional.
    """
    criteria = ProductFilter(
        category_id=category_id,
        is_active=is_active,
        min_price=min_price,
        max_price=max_price,
    )
    return handlers.get_product_service().filter_products(criteria, _is_admin(user))


@router.get("/{product_id}", response_model=ProductRead)
def get_product_by_id(
    product_id: uuid.UUID,
    user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Get a single product by id (signed-in users)."""
    return handlers.get_product_service().get_product_by_id(product_id, _is_admin(user))


# -------- Admin endpoints --------


@router.post(
    "/",
    response_model=ProductCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    payload: ProductCreate,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    product_id = handlers.get_product_service().create_product(payload)
    log_success(request, "create_product", "Created product successful", admin.id)
    return {"message": "Product created successfully", "product_id": product_id}


@router.put("/", response_model=MessageResponse)
def update_product(
    payload: ProductUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_product_service().update_product(payload)
    log_success(request, "update_product", "Updated product successful", admin.id)
    return {"message": "Product updated successfully"}


@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_product_service().delete_product(product_id)
    log_success(request, "delete_product", "Deleted product successful", admin.id)
    return {"message": "Product deleted successfully"}
