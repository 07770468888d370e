# app/repositories/user_repo.py
import uuid

from sqlmodel import Session, select

from app.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
      - No commits; the calling service owns the transaction
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def name_exists(self, session: Session, name: str) -> bool:
        stmt = select(User.id).where(User.name == name)
        return session.exec(stmt).first() is not None

    def email_exists(self, session: Session, email: str) -> bool:
        stmt = select(User.id).where(User.email == email)
        return session.exec(stmt).first() is not None

    # ----- Writes -----

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and flush so constraint violations surface here."""
        session.add(user)
        session.flush()
        return user

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        session.add(user)
        session.flush()
        return user
