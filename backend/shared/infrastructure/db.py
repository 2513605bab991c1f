"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import sessionmaker, Session

from shared.config.constants import ErrorCode
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.exceptions import StoreError

logger = get_logger(__name__)


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores unless configured.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    if settings.db_pool_size > 0:
        return settings.db_pool_size
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


# Store calls complete or fail within the pool/connect timeouts below;
# no extra timeout layer is added on top
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=_calculate_pool_size(),
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout,
    pool_recycle=settings.db_pool_recycle,
    connect_args={"connect_timeout": settings.db_connect_timeout},
    echo=settings.db_echo,
)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency-style generator for database sessions.
    The session is closed after the caller is done with it.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_context() as db:
            CatalogService(db).list_products(tenant_id=1)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.
    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


@contextmanager
def translate_store_errors(db: Session, operation: str, **log_context) -> Generator[None, None, None]:
    """
    Roll back and re-raise persistence failures as StoreError.

    Connectivity loss, timeouts, deadlocks and serialization failures
    surface from the driver as OperationalError/DBAPIError. They are
    reported as retryable StoreError so callers can tell them apart
    from validation and business rule failures.

    Usage:
        with translate_store_errors(db, "list products", tenant_id=tenant_id):
            rows = db.execute(query).all()
    """
    try:
        yield
    except OperationalError as exc:
        db.rollback()
        raise StoreError(operation, code=ErrorCode.STORE_UNAVAILABLE, error=str(exc.orig), **log_context) from exc
    except DBAPIError as exc:
        db.rollback()
        raise StoreError(operation, code=ErrorCode.STORE_UNAVAILABLE, error=str(exc.orig), **log_context) from exc
