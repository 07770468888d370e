# app/services/user_service.py
import uuid

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import AppError, ErrorCode
from app.core.security import is_valid_email, is_valid_username
from app.database import SessionFactory, commit, read_session, transaction
from app.models.user import User, utcnow
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserRead, UserUpdate


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - expose the caller's own profile
      - apply profile edits in a transaction
      - promote users to admin (admins only)
    """

    def __init__(
        self,
        repo: UserRepository | None,
        session_factory: SessionFactory | None,
    ):
        self.repo = repo
        self.session_factory = session_factory

    # ----- Self profile -----

    def get_user(self, current_user: User) -> UserRead:
        """Profile view of the authenticated user."""
        return UserRead(
            id=current_user.id,
            name=current_user.name,
            email=current_user.email,
            phone=current_user.phone,
            address=current_user.address,
        )

    def update_user(self, current_user: User, payload: UserUpdate) -> None:
        """
        Apply profile edits. Fields left as None keep their value.

        Rules:
          - name/email follow the sign-up format rules
          - a new email must not belong to another account
        """
        if self.session_factory is None or self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")
        if payload.name is not None and not is_valid_username(payload.name):
            raise AppError(ErrorCode.INVALID_REQUEST, "Invalid username format")
        if payload.email is not None and not is_valid_email(payload.email):
            raise AppError(ErrorCode.INVALID_REQUEST, "Invalid email format")

        with transaction(self.session_factory) as session:
            try:
                user = self.repo.get_by_id(session, current_user.id)
                if user is None:
                    raise AppError(ErrorCode.USER_NOT_FOUND, "User not found")

                if payload.email is not None and payload.email != user.email:
                    if self.repo.email_exists(session, payload.email):
                        raise AppError(ErrorCode.EMAIL_EXISTS, "An account with this email already exists")
                    user.email = payload.email
                if payload.name is not None:
                    user.name = payload.name
                if payload.phone is not None:
                    user.phone = payload.phone
                if payload.address is not None:
                    user.address = payload.address
                user.updated_at = utcnow()
                self.repo.update(session, user)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_FAILED, "Failed to update user", e) from e
            commit(session)

    # ----- Lookups -----

    def get_user_by_id(self, user_id: uuid.UUID) -> User:
        if self.repo is None:
            raise AppError(ErrorCode.DATABASE_ERROR, "Database not initialized")

        with read_session(self.session_factory) as session:
            try:
                user = self.repo.get_by_id(session, user_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch user", e) from e

        if user is None:
            raise AppError(ErrorCode.USER_NOT_FOUND, "User not found")
        return user

    # ----- Admin operations -----

    def promote_user_to_admin(self, acting_user: User, target_user_id: uuid.UUID) -> None:
        """
        Give `target_user_id` the admin role.

        Rules:
          - only admins may promote; checked before touching the database
          - promoting an existing admin is rejected without an update

        Raises:
            AppError(unauthorized_user): acting user is not an admin.
            AppError(user_not_found): target lookup failed.
            AppError(already_admin): target already has the role.
            AppError(update_error): role update failed.
        """
        if acting_user.role != "admin":
            raise AppError(ErrorCode.UNAUTHORIZED_USER, "Only admins can promote users")
        if self.session_factory is None or self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

        with transaction(self.session_factory) as session:
            try:
                target = self.repo.get_by_id(session, target_user_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.USER_NOT_FOUND, "User not found", e) from e
            if target is None:
                raise AppError(ErrorCode.USER_NOT_FOUND, "User not found")
            if target.role == "admin":
                raise AppError(ErrorCode.ALREADY_ADMIN, "User is already an admin")

            target.role = "admin"
            target.updated_at = utcnow()
            try:
                self.repo.update(session, target)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_ERROR, "Failed to promote user", e) from e
            commit(session)
