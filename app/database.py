# app/database.py
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, Session, create_engine

from app.core.errors import AppError, ErrorCode

SessionFactory = Callable[[], Session]

# ---------------------------------------------------------
# Postgres connection
#
# - sslmode=require   : enforced for remote Postgres hosts
# - pool_pre_ping=True: validate connections before using them
#
# SQLite URLs (local runs, tests) are passed through untouched.
# ---------------------------------------------------------


def _normalize_url(db_url: str) -> str:
    if not db_url.startswith("postgres"):
        return db_url
    if "localhost" in db_url or "127.0.0.1" in db_url:
        return db_url

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"
    return db_url


def build_engine(db_url: str) -> Engine:
    """Create the SQLAlchemy engine for `db_url`."""
    return create_engine(
        _normalize_url(db_url),
        echo=False,  # set to True if you want to debug SQL queries
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> SessionFactory:
    """
    Session factory handed to services.

    expire_on_commit=False keeps returned rows readable after the
    service has committed and closed its session.
    """
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


def create_db_and_tables(engine: Engine) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


@contextmanager
def transaction(session_factory: SessionFactory | None) -> Iterator[Session]:
    """
    Open a session for one unit of work.

    Rules:
      - a missing factory raises `transaction_error` before anything runs
      - the session is always rolled back on exit; after a successful
        commit the rollback is a no-op
      - committing is the caller's job, see `commit()`

    Usage:

        with transaction(self.session_factory) as session:
            self.repo.create(session, row)
            commit(session)
    """
    if session_factory is None:
        raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

    try:
        session = session_factory()
    except SQLAlchemyError as e:
        raise AppError(ErrorCode.TRANSACTION_ERROR, "Error starting transaction", e) from e

    try:
        yield session
    finally:
        session.rollback()
        session.close()


def commit(session: Session) -> None:
    """Commit, surfacing failures as `commit_error`."""
    try:
        session.commit()
    except SQLAlchemyError as e:
        raise AppError(ErrorCode.COMMIT_ERROR, "Error committing transaction", e) from e


@contextmanager
def read_session(
    session_factory: SessionFactory | None,
    missing_code: ErrorCode = ErrorCode.DATABASE_ERROR,
) -> Iterator[Session]:
    """Plain session for read-only queries; no transaction bookkeeping."""
    if session_factory is None:
        raise AppError(missing_code, "Database not initialized")

    session = session_factory()
    try:
        yield session
    finally:
        session.close()
