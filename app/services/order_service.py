# app/services/order_service.py
import uuid
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import AppError, ErrorCode
from app.database import SessionFactory, commit, read_session, transaction
from app.models.order import Order, OrderItem
from app.models.user import User, utcnow
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)

ORDER_STATUSES = {"pending", "paid", "shipped", "delivered", "cancelled"}


class OrderService:
    """
    Checkout and order administration.

    Covers:
      - Create an order from requested items
      - Validate items against products (exists, active, stock)
      - Compute total_amount from current product prices
      - Deduct stock
      - Admin status changes and deletion
    """

    def __init__(
        self,
        order_repo: OrderRepository | None,
        product_repo: ProductRepository | None,
        session_factory: SessionFactory | None,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.session_factory = session_factory

    def _require_writer(self) -> None:
        if self.session_factory is None or self.order_repo is None or self.product_repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

    def _require_reader(self) -> None:
        if self.order_repo is None:
            raise AppError(ErrorCode.DATABASE_ERROR, "Database not initialized")

    # ===== Customer =====

    def create_order(self, user: User, payload: OrderCreate) -> str:
        """Create a pending order for `user` and return its id."""
        self._require_writer()
        with transaction(self.session_factory) as session:
            order = self.place_order(session, user, payload)
            commit(session)
        return str(order.id)

    def place_order(self, session: Session, user: User, payload: OrderCreate) -> Order:
        """
        Write a pending order inside the caller's transaction. Never commits.

        Steps:
          1. Reject empty orders.
          2. For each item: product must exist, be active and have stock.
          3. Insert the Order, then its OrderItems.
          4. Deduct product stock.
        """
        if self.order_repo is None or self.product_repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")
        if not payload.items:
            raise AppError(ErrorCode.INVALID_REQUEST, "Order must contain at least one item")

        total = Decimal("0.00")
        lines: list[tuple] = []
        reserved: dict[uuid.UUID, int] = {}
        for item in payload.items:
            product = self.product_repo.get_by_id(session, item.product_id)
            if product is None or not product.is_active:
                raise AppError(ErrorCode.PRODUCT_NOT_FOUND, f"Product {item.product_id} not found")
            # repeated lines draw on the same stock
            wanted = reserved.get(product.id, 0) + item.quantity
            if wanted > product.stock:
                raise AppError(
                    ErrorCode.INVALID_REQUEST,
                    f"Insufficient stock for product {item.product_id}",
                )
            reserved[product.id] = wanted
            total += product.price * item.quantity
            lines.append((product, item.quantity))

        order = Order(
            id=uuid.uuid4(),
            user_id=user.id,
            total_amount=total,
            status="pending",
            payment_method=payload.payment_method,
            external_payment_id=payload.external_payment_id,
            tracking_number=payload.tracking_number,
            shipping_address=payload.shipping_address,
            contact_phone=payload.contact_phone,
        )
        try:
            self.order_repo.create(session, order)
        except SQLAlchemyError as e:
            raise AppError(ErrorCode.CREATE_ORDER_ERROR, "Error creating order", e) from e

        items = [
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                quantity=quantity,
                price=product.price,
            )
            for product, quantity in lines
        ]
        try:
            self.order_repo.add_items(session, items)
            for product, quantity in lines:
                product.stock -= quantity
                product.updated_at = utcnow()
                self.product_repo.update(session, product)
        except SQLAlchemyError as e:
            raise AppError(ErrorCode.CREATE_ORDER_ITEM_ERROR, "Error creating order item", e) from e

        return order

    def get_user_orders(self, user: User) -> list[OrderWithItemsRead]:
        """Every order of `user`, newest first, with items."""
        self._require_reader()
        with read_session(self.session_factory) as session:
            try:
                orders = self.order_repo.list_for_user(session, user.id)
                lines = self.order_repo.items_by_order(session, [order.id for order in orders])
                return [self._with_items(order, lines.get(order.id, [])) for order in orders]
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to get orders", e) from e

    def get_order_by_id(self, order_id: uuid.UUID, user: User) -> OrderWithItemsRead:
        """
        Single order with items.

        - owner or admin only (`unauthorized` otherwise)
        """
        self._require_reader()
        with read_session(self.session_factory) as session:
            try:
                order = self.order_repo.get_by_id(session, order_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.ORDER_NOT_FOUND, "Order not found", e) from e
            if order is None:
                raise AppError(ErrorCode.ORDER_NOT_FOUND, "Order not found")
            if order.user_id != user.id and user.role != "admin":
                raise AppError(ErrorCode.UNAUTHORIZED, "User is not authorized to view this order")

            try:
                items = self.order_repo.list_items(session, order.id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch order items", e) from e

        return self._with_items(order, items)

    def get_order_items(self, order_id: uuid.UUID, user: User) -> list[OrderItemRead]:
        return self.get_order_by_id(order_id, user).items

    # ===== Admin =====

    def get_all_orders(self) -> list[OrderRead]:
        self._require_reader()
        with read_session(self.session_factory) as session:
            try:
                orders = self.order_repo.list_all(session)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to list orders", e) from e
        return [OrderRead.model_validate(order, from_attributes=True) for order in orders]

    def update_order_status(self, order_id: uuid.UUID, payload: OrderStatusUpdate) -> None:
        if self.session_factory is None or self.order_repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")
        if payload.status not in ORDER_STATUSES:
            raise AppError(ErrorCode.INVALID_STATUS, "Invalid order status")

        with transaction(self.session_factory) as session:
            try:
                order = self.order_repo.get_by_id(session, order_id)
                if order is None:
                    raise AppError(ErrorCode.ORDER_NOT_FOUND, "Order not found")
                order.status = payload.status
                order.updated_at = utcnow()
                self.order_repo.update(session, order)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_FAILED, "Failed to update order status", e) from e
            commit(session)

    def delete_order(self, order_id: uuid.UUID) -> None:
        if self.session_factory is None or self.order_repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

        with transaction(self.session_factory) as session:
            try:
                order = self.order_repo.get_by_id(session, order_id)
                if order is None:
                    raise AppError(ErrorCode.ORDER_NOT_FOUND, "Order not found")
                self.order_repo.delete(session, order)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DELETE_ORDER_ERROR, "Failed to delete order", e) from e
            commit(session)

    # ===== Internal =====

    def _with_items(self, order: Order, items: list[OrderItem]) -> OrderWithItemsRead:
        return OrderWithItemsRead(
            **OrderRead.model_validate(order, from_attributes=True).model_dump(),
            items=[
                OrderItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    price=it.price,
                )
                for it in items
            ],
        )
