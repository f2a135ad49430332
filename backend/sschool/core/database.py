import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from sschool.core.exceptions import ConflictError, InternalError

logger = logging.getLogger(__name__)

# Base class for all database models
Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create the engine for a connection string.

    SQLite connections are handed between worker threads (the dashboard fans
    out across a thread pool), so the same-thread check is disabled there.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False keeps loaded rows readable after the store call returns
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_database(engine: Engine) -> None:
    """Verify connectivity and create any missing tables.

    Raises if the store cannot be reached; startup treats that as fatal.
    """
    # Models register themselves on Base.metadata when imported
    from sschool.models import book, material, user  # noqa: F401

    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    Base.metadata.create_all(bind=engine)
    logger.info("Database connection established")


@contextmanager
def store_errors(db: Session, conflict_message: str = "Resource already exists") -> Iterator[Session]:
    """Translate driver failures into the API error taxonomy.

    Unique-index violations become ConflictError; every other SQLAlchemy
    failure becomes InternalError. The session is rolled back in both cases.
    """
    try:
        yield db
    except IntegrityError as exc:
        # Two writers can pass the same pre-check; the unique index settles the race
        db.rollback()
        logger.info(f"Unique constraint rejected write: {exc.orig}")
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        # Connection loss, bad SQL and the like; the caller only sees a generic 500
        db.rollback()
        logger.exception("Database error")
        raise InternalError("Database error occurred") from exc


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
