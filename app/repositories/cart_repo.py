# app/repositories/cart_repo.py
import uuid

from sqlmodel import Session, select

from app.models.cart import CartItem


class CartRepository:
    """Cart rows of signed-in users. Flushes, never commits."""

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[CartItem]:
        stmt = select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.created_at)
        return list(session.exec(stmt).all())

    def get_item(self, session: Session, user_id: uuid.UUID, product_id: uuid.UUID) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
        )
        return session.exec(stmt).first()

    def save(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()

    def clear(self, session: Session, user_id: uuid.UUID) -> None:
        for item in self.list_for_user(session, user_id):
            session.delete(item)
        session.flush()
