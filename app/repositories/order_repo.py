# app/repositories/order_repo.py
import uuid
from collections import defaultdict

from sqlmodel import Session, select

from app.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for Order and its OrderItem lines.

    - Flushes so generated ids and constraint errors surface early.
    - Never commits; order creation spans several calls and the service
      owns the transaction.
    """

    # ----- Orders -----

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[Order]:
        """Newest first."""
        stmt = select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc())
        return list(session.exec(stmt).all())

    def list_all(self, session: Session) -> list[Order]:
        return list(session.exec(select(Order).order_by(Order.created_at.desc())).all())

    def create(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    def update(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    def delete(self, session: Session, order: Order) -> None:
        """Remove the order together with its lines."""
        for line in self.list_items(session, order.id):
            session.delete(line)
        session.delete(order)
        session.flush()

    # ----- Lines -----

    def add_items(self, session: Session, items: list[OrderItem]) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items

    def list_items(self, session: Session, order_id: uuid.UUID) -> list[OrderItem]:
        return list(session.exec(select(OrderItem).where(OrderItem.order_id == order_id)).all())

    def items_by_order(
        self,
        session: Session,
        order_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[OrderItem]]:
        """Lines for several orders in one query, grouped by order id."""
        grouped: dict[uuid.UUID, list[OrderItem]] = defaultdict(list)
        if not order_ids:
            return grouped
        stmt = select(OrderItem).where(OrderItem.order_id.in_(order_ids))
        for line in session.exec(stmt).all():
            grouped[line.order_id].append(line)
        return grouped
