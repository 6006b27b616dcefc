"""
Database Configuration and Session Management

SQLAlchemy engine, session factory and the declarative base shared by
all models.

NOTE: Sessions handed out here are raw. Team isolation is applied by
TeamScope (teamkit.core.scoping), which only accepts a team id that came
out of an allowed access decision.
"""
import logging
from datetime import datetime, timezone
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from teamkit.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(database_url: str, echo: bool = False, **engine_options):
    """
    Create an engine for the given URL.

    SQLite gets no pool sizing (its default pools reject those options)
    and foreign keys switched on so ON DELETE CASCADE actually fires.
    """
    if database_url.startswith("sqlite"):
        new_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
            **engine_options
        )
    else:
        new_engine = create_engine(
            database_url,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_pre_ping=True,  # Verify connections before using (handles stale connections)
            echo=echo,
            **engine_options
        )

    @event.listens_for(new_engine, "connect")
    def configure_connection(dbapi_connection, connection_record):
        """Set connection-level configuration on new connections."""
        cursor = dbapi_connection.cursor()
        if database_url.startswith("postgresql"):
            cursor.execute("SET TIME ZONE 'UTC'")
        elif database_url.startswith("sqlite"):
            cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        logger.debug("New database connection established")

    return new_engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# expire_on_commit=False lets handlers read attributes after commit
# without another round trip.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC now. DateTime columns store UTC without an offset."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db() -> Generator[Session, None, None]:
    """One session per request. Handlers commit; this only closes."""
    with SessionLocal() as db:
        yield db


def init_db() -> None:
    """Create all tables. Development only; deployments run migrations."""
    # Import models so they register on Base.metadata
    import teamkit.models  # noqa: F401

    logger.warning("Creating tables with create_all()")
    Base.metadata.create_all(bind=engine)
