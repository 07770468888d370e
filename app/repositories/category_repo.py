# app/repositories/category_repo.py
import uuid

from sqlmodel import Session, select

from app.models.category import Category


class CategoryRepository:
    """
    Data access layer for Category.

    - Pure DB operations, no commits.
    """

    def list(self, session: Session) -> list[Category]:
        stmt = select(Category).order_by(Category.name)
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, category_id: uuid.UUID) -> Category | None:
        return session.get(Category, category_id)

    def create(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.flush()
        return category

    def update(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.flush()
        return category

    def delete(self, session: Session, category_id: uuid.UUID) -> None:
        category = session.get(Category, category_id)
        if category is not None:
            session.delete(category)
            session.flush()
