# app/routers/cart.py
import uuid

from fastapi import APIRouter, Cookie, Depends, Request, Response

from app.core.action_log import log_success
from app.core.auth import require_auth
from app.core.cookies import GUEST_SESSION_COOKIE, set_guest_session_cookie
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.cart import CartItemAdd, CartItemUpdate, CartSummary, CheckoutResult
from app.schemas.common import MessageResponse

router = APIRouter(prefix="/cart", tags=["Cart"])
guest_router = APIRouter(prefix="/guest-cart", tags=["Guest cart"])

CHECKOUT_MESSAGE = "Order placed successfully"


# -------- Signed-in cart --------


@router.get("/items", response_model=CartSummary)
def get_my_cart(
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Current user's cart with line and cart totals."""
    return handlers.get_cart_service().get_cart(current_user)


@router.post("/items", response_model=CartSummary)
def add_to_cart(
    payload: CartItemAdd,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    summary = handlers.get_cart_service().add_item(current_user, payload)
    log_success(request, "add_item_to_cart", "Added item to cart", current_user.id)
    return summary


@router.put("/items/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Set the quantity of a product already in the cart."""
    summary = handlers.get_cart_service().update_item(current_user, product_id, payload)
    log_success(request, "update_cart_item", "Updated cart item quantity", current_user.id)
    return summary


@router.delete("/items/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    summary = handlers.get_cart_service().remove_item(current_user, product_id)
    log_success(request, "remove_item_from_cart", "Removed item from cart", current_user.id)
    return summary


@router.delete("/", response_model=MessageResponse)
def clear_cart(
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_cart_service().clear_cart(current_user)
    log_success(request, "clear_cart", "Cleared cart", current_user.id)
    return {"message": "Cart cleared"}


@router.post("/checkout", response_model=CheckoutResult)
def checkout_cart(
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Turn the cart into a pending order and empty it."""
    order_id = handlers.get_cart_service().checkout(current_user)
    log_success(request, "checkout_user_cart", "User cart checked out", current_user.id)
    return {"message": CHECKOUT_MESSAGE, "order_id": order_id}


# -------- Guest cart --------
# Identified by the guest_session_id cookie, no sign-in required.


@guest_router.get("/", response_model=CartSummary)
def get_guest_cart(
    guest_session: str | None = Cookie(default=None, alias=GUEST_SESSION_COOKIE),
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_cart_service().get_guest_cart(guest_session)


@guest_router.post("/items", response_model=CartSummary)
def add_to_guest_cart(
    payload: CartItemAdd,
    request: Request,
    response: Response,
    guest_session: str | None = Cookie(default=None, alias=GUEST_SESSION_COOKIE),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """
    Add a product to the visitor's cart.

    The first add opens a guest session and sets its cookie.
    """
    session_id = guest_session or str(uuid.uuid4())
    summary = handlers.get_cart_service().add_guest_item(session_id, payload)
    if session_id != guest_session:
        set_guest_session_cookie(response, session_id, secure=handlers.settings.COOKIE_SECURE)
    log_success(request, "add_item_guest_cart", "Added item to guest cart")
    return summary


@guest_router.put("/items/{product_id}", response_model=CartSummary)
def update_guest_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    guest_session: str | None = Cookie(default=None, alias=GUEST_SESSION_COOKIE),
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_cart_service().update_guest_item(guest_session, product_id, payload)


@guest_router.delete("/items/{product_id}", response_model=CartSummary)
def remove_guest_cart_item(
    product_id: uuid.UUID,
    guest_session: str | None = Cookie(default=None, alias=GUEST_SESSION_COOKIE),
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_cart_service().remove_guest_item(guest_session, product_id)


@guest_router.delete("/", response_model=MessageResponse)
def clear_guest_cart(
    guest_session: str | None = Cookie(default=None, alias=GUEST_SESSION_COOKIE),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_cart_service().clear_guest_cart(guest_session)
    return {"message": "Cart cleared"}


@guest_router.post("/checkout", response_model=CheckoutResult)
def checkout_guest_cart(
    request: Request,
    guest_session: str | None = Cookie(default=None, alias=GUEST_SESSION_COOKIE),
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Check out the guest cart once the visitor has signed in."""
    order_id = handlers.get_cart_service().checkout_guest_cart(guest_session, current_user)
    log_success(request, "checkout_guest_cart", "Guest cart checked out", current_user.id)
    return {"message": CHECKOUT_MESSAGE, "order_id": order_id}
