# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, Request, status

from app.core.action_log import log_success
from app.core.auth import require_admin, require_auth
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.order import (
    OrderCreate,
    OrderCreated,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)

router = APIRouter(prefix="/orders", tags=["Orders"])


# -------- User-facing endpoints --------


@router.post(
    "/",
    response_model=OrderCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Create a pending order for the current user.
    Prices come from the product catalog, not from the request.
    """
    order_id = handlers.get_order_service().create_order(current_user, payload)
    log_success(request, "create_order", "Created order successful", current_user.id)
    return {"message": "Created order successful", "order_id": order_id}


@router.get("/user", response_model=list[OrderWithItemsRead])
def get_user_orders(
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """List the authenticated user's orders with items."""
    return handlers.get_order_service().get_user_orders(current_user)


@router.get("/items/{order_id}", response_model=list[OrderItemRead])
def get_order_items(
    order_id: uuid.UUID,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_order_service().get_order_items(order_id, current_user)


@router.get("/{order_id}", response_model=OrderWithItemsRead)
def get_order_by_id(
    order_id: uuid.UUID,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Get a single order (owner or admin)."""
    return handlers.get_order_service().get_order_by_id(order_id, current_user)


# -------- Admin endpoints --------


@router.get(
    "/",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def get_all_orders(handlers: HandlersConfig = Depends(get_handlers)):
    """List all orders (admin only)."""
    return handlers.get_order_service().get_all_orders()


@router.put("/{order_id}/status", response_model=MessageResponse)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Set an order's status (admin only).

    Allowed: pending, paid, shipped, delivered, cancelled.
    """
    handlers.get_order_service().update_order_status(order_id, payload)
    log_success(request, "update_order_status", f"Order status set to {payload.status}", admin.id)
    return {"message": "Order status updated successfully"}


@router.delete("/{order_id}", response_model=MessageResponse)
def delete_order(
    order_id: uuid.UUID,
    request: Request,
    admin: User = Depends(require_admin),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_order_service().delete_order(order_id)
    log_success(request, "delete_order", "Order deleted successful", admin.id)
    return {"message": "Order deleted successfully"}
