# app/services/cart_service.py
import logging
import uuid
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.cache import GuestCartStore
from app.core.errors import AppError, ErrorCode
from app.database import SessionFactory, commit, read_session, transaction
from app.models.cart import CartItem
from app.models.product import Product
from app.models.user import User, utcnow
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartItemAdd, CartItemRead, CartItemUpdate, CartLine, CartSummary
from app.schemas.order import OrderCreate, OrderItemInput
from app.services.order_service import OrderService

logger = logging.getLogger("uvicorn.error")

MAX_QUANTITY = 1000
MAX_CART_ITEMS = 50


def summarize(lines: list[CartLine] | list[CartItem]) -> CartSummary:
    items = [
        CartItemRead(
            product_id=line.product_id,
            name=line.name,
            quantity=line.quantity,
            price=line.price,
            line_total=line.price * line.quantity,
        )
        for line in lines
    ]
    return CartSummary(
        items=items,
        total_quantity=sum(item.quantity for item in items),
        total_price=sum((item.line_total for item in items), Decimal("0.00")),
    )


def _validate_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise AppError(ErrorCode.INVALID_REQUEST, "Quantity must be greater than 0")
    if quantity > MAX_QUANTITY:
        raise AppError(ErrorCode.INVALID_REQUEST, "Quantity exceeds maximum allowed")


def _check_stock(product: Product, quantity: int) -> None:
    if quantity > product.stock:
        raise AppError(ErrorCode.INVALID_REQUEST, "Not enough stock available")


class CartService:
    """
    Shopping carts for signed-in users (database) and guests (Redis).

    Rules:
      - only active products go in a cart
      - a line holds 1..1000 units and never more than the product's stock
      - a cart holds at most 50 distinct products
      - checkout turns the cart into a pending order and empties it
    """

    def __init__(
        self,
        cart_repo: CartRepository | None,
        product_repo: ProductRepository | None,
        session_factory: SessionFactory | None,
        guest_carts: GuestCartStore | None = None,
        order_service: OrderService | None = None,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.session_factory = session_factory
        self.guest_carts = guest_carts
        self.order_service = order_service

    # ----- Helpers -----

    def _require_db(self) -> None:
        if self.session_factory is None or self.cart_repo is None or self.product_repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

    def _require_guest_store(self, session_id: str | None) -> GuestCartStore:
        if self.guest_carts is None:
            raise AppError(ErrorCode.PROVIDER_NOT_CONFIGURED, "Guest carts are not configured")
        if not session_id:
            raise AppError(ErrorCode.INVALID_REQUEST, "Missing session ID")
        return self.guest_carts

    def _require_checkout(self) -> OrderService:
        if self.order_service is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "Order service is not configured")
        return self.order_service

    def _active_product(self, session: Session, product_id: uuid.UUID) -> Product:
        try:
            product = self.product_repo.get_active_by_id(session, product_id)
        except SQLAlchemyError as e:
            raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch product", e) from e
        if product is None:
            raise AppError(ErrorCode.PRODUCT_NOT_FOUND, "Product not found")
        return product

    # ===== Signed-in carts =====

    def get_cart(self, user: User) -> CartSummary:
        if self.cart_repo is None:
            raise AppError(ErrorCode.DATABASE_ERROR, "Database not initialized")
        with read_session(self.session_factory) as session:
            try:
                return summarize(self.cart_repo.list_for_user(session, user.id))
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to get user cart", e) from e

    def add_item(self, user: User, payload: CartItemAdd) -> CartSummary:
        """
        Put `payload.quantity` units in the cart, merging with an existing line.

        The line price is refreshed from the catalog on every add.
        """
        self._require_db()
        _validate_quantity(payload.quantity)

        with transaction(self.session_factory) as session:
            product = self._active_product(session, payload.product_id)
            try:
                item = self.cart_repo.get_item(session, user.id, product.id)
                if item is None:
                    if len(self.cart_repo.list_for_user(session, user.id)) >= MAX_CART_ITEMS:
                        raise AppError(ErrorCode.CART_FULL, "Cart is full")
                    item = CartItem(
                        user_id=user.id,
                        product_id=product.id,
                        quantity=0,
                        price=product.price,
                        name=product.name,
                    )

                quantity = item.quantity + payload.quantity
                _validate_quantity(quantity)
                _check_stock(product, quantity)

                item.quantity = quantity
                item.price = product.price
                item.name = product.name
                item.updated_at = utcnow()
                self.cart_repo.save(session, item)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.ADD_FAILED, "Failed to add item to cart", e) from e
            commit(session)
            return summarize(self.cart_repo.list_for_user(session, user.id))

    def update_item(self, user: User, product_id: uuid.UUID, payload: CartItemUpdate) -> CartSummary:
        self._require_db()
        _validate_quantity(payload.quantity)

        with transaction(self.session_factory) as session:
            try:
                item = self.cart_repo.get_item(session, user.id, product_id)
                if item is None:
                    raise AppError(ErrorCode.ITEM_NOT_FOUND, "Item not found in cart")
                product = self._active_product(session, product_id)
                _check_stock(product, payload.quantity)

                item.quantity = payload.quantity
                item.updated_at = utcnow()
                self.cart_repo.save(session, item)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_FAILED, "Failed to update item quantity", e) from e
            commit(session)
            return summarize(self.cart_repo.list_for_user(session, user.id))

    def remove_item(self, user: User, product_id: uuid.UUID) -> CartSummary:
        self._require_db()
        with transaction(self.session_factory) as session:
            try:
                item = self.cart_repo.get_item(session, user.id, product_id)
                if item is None:
                    raise AppError(ErrorCode.ITEM_NOT_FOUND, "Item not found in cart")
                self.cart_repo.delete(session, item)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.REMOVE_FAILED, "Failed to remove item from cart", e) from e
            commit(session)
            return summarize(self.cart_repo.list_for_user(session, user.id))

    def clear_cart(self, user: User) -> None:
        self._require_db()
        with transaction(self.session_factory) as session:
            try:
                self.cart_repo.clear(session, user.id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.CLEAR_FAILED, "Failed to clear user cart", e) from e
            commit(session)

    def checkout(self, user: User) -> str:
        """
        Place an order for everything in the user's cart and return its id.

        Order and emptied cart are committed together.
        """
        self._require_db()
        orders = self._require_checkout()

        with transaction(self.session_factory) as session:
            try:
                items = self.cart_repo.list_for_user(session, user.id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to get user cart", e) from e
            if not items:
                raise AppError(ErrorCode.CART_EMPTY, "Cart is empty")

            order = orders.place_order(session, user, _order_from(items))
            try:
                self.cart_repo.clear(session, user.id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.CLEAR_FAILED, "Failed to clear user cart", e) from e
            commit(session)

        return str(order.id)

    # ===== Guest carts =====

    def get_guest_cart(self, session_id: str | None) -> CartSummary:
        """A visitor without a session simply has an empty cart."""
        if not session_id:
            return summarize([])
        return summarize(self._require_guest_store(session_id).load(session_id))

    def add_guest_item(self, session_id: str | None, payload: CartItemAdd) -> CartSummary:
        store = self._require_guest_store(session_id)
        self._require_db()
        _validate_quantity(payload.quantity)

        with read_session(self.session_factory) as session:
            product = self._active_product(session, payload.product_id)

        lines = store.load(session_id)
        line = next((line for line in lines if line.product_id == product.id), None)
        if line is None:
            if len(lines) >= MAX_CART_ITEMS:
                raise AppError(ErrorCode.CART_FULL, "Cart is full")
            line = CartLine(product_id=product.id, name=product.name, quantity=0, price=product.price)
            lines.append(line)

        quantity = line.quantity + payload.quantity
        _validate_quantity(quantity)
        _check_stock(product, quantity)
        line.quantity = quantity
        line.price = product.price
        line.name = product.name

        store.save(session_id, lines)
        return summarize(lines)

    def update_guest_item(
        self,
        session_id: str | None,
        product_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartSummary:
        store = self._require_guest_store(session_id)
        self._require_db()
        _validate_quantity(payload.quantity)

        lines = store.load(session_id)
        line = next((line for line in lines if line.product_id == product_id), None)
        if line is None:
            raise AppError(ErrorCode.ITEM_NOT_FOUND, "Item not found in cart")

        with read_session(self.session_factory) as session:
            product = self._active_product(session, product_id)
        _check_stock(product, payload.quantity)

        line.quantity = payload.quantity
        store.save(session_id, lines)
        return summarize(lines)

    def remove_guest_item(self, session_id: str | None, product_id: uuid.UUID) -> CartSummary:
        store = self._require_guest_store(session_id)
        lines = store.load(session_id)
        remaining = [line for line in lines if line.product_id != product_id]
        if len(remaining) == len(lines):
            raise AppError(ErrorCode.ITEM_NOT_FOUND, "Item not found in cart")
        store.save(session_id, remaining)
        return summarize(remaining)

    def clear_guest_cart(self, session_id: str | None) -> None:
        self._require_guest_store(session_id).delete(session_id)

    def checkout_guest_cart(self, session_id: str | None, user: User) -> str:
        """
        Check out a guest cart on behalf of the now signed-in `user`.

        The guest cart is dropped once the order is committed; failing to
        drop it is logged and does not undo the order.
        """
        store = self._require_guest_store(session_id)
        self._require_db()
        orders = self._require_checkout()

        lines = store.load(session_id)
        if not lines:
            raise AppError(ErrorCode.CART_EMPTY, "Cart is empty")

        with transaction(self.session_factory) as session:
            order = orders.place_order(session, user, _order_from(lines))
            commit(session)

        try:
            store.delete(session_id)
        except AppError as e:
            logger.warning("guest cart %s not cleared after checkout: %s", session_id, e)
        return str(order.id)


def _order_from(lines: list[CartLine] | list[CartItem]) -> OrderCreate:
    return OrderCreate(
        items=[OrderItemInput(product_id=line.product_id, quantity=line.quantity) for line in lines]
    )
