# app/repositories/product_repo.py
import uuid
from decimal import Decimal

from sqlmodel import Session, select

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic, no commits.
    - Listing comes in two variants (all / active only); the service
      picks one based on the caller's role.
    """

    # ----- Reads -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_active_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        stmt = select(Product).where(
            Product.id == product_id,
            Product.is_active == True,  # noqa: E712
        )
        return session.exec(stmt).first()

    def list_all(self, session: Session) -> list[Product]:
        stmt = select(Product).order_by(Product.created_at.desc())
        return list(session.exec(stmt).all())

    def list_active(self, session: Session) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.is_active == True)  # noqa: E712
            .order_by(Product.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def filter(
        self,
        session: Session,
        category_id: uuid.UUID | None = None,
        is_active: bool | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
    ) -> list[Product]:
        """Every argument left as None is not applied."""
        stmt = select(Product)
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if is_active is not None:
            stmt = stmt.where(Product.is_active == is_active)
        if min_price is not None:
            stmt = stmt.where(Product.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price <= max_price)
        stmt = stmt.order_by(Product.created_at.desc())
        return list(session.exec(stmt).all())

    # ----- Writes -----

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.flush()
