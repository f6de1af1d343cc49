"""Database engine, session factory, and dependency injection."""

from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from qrstudio.core.config import settings
from qrstudio.core.exceptions import RemoteStoreError


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; pool tuning only applies to server databases."""
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=20,
        max_overflow=40,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
        echo=echo,
    )


engine = build_engine(settings.DATABASE_URL, echo=False)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_errors(db: Session, operation: str) -> Iterator[None]:
    """Roll back and re-raise database failures as RemoteStoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        raise RemoteStoreError(f"{operation} failed: {e}") from e
