"""
Database connection and schema for stored GPS locations.

One table holds every retained report. The engine and session factory are
built explicitly from Settings at startup (see main.lifespan) and handed to
LocationStore, instead of living as module globals.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Index, Integer, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings

logger = logging.getLogger(__name__)

# Base class for our models
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GpsLocation(Base):
    """
    One location report from the tracking device.

    The (timestamp, id) index serves both "newest first" reads and
    "oldest first" trim selection.
    """
    __tablename__ = "gps_locations"
    # Never reuse ids on SQLite, even after the newest rows are deleted
    __table_args__ = (
        Index("ix_gps_locations_timestamp_id", "timestamp", "id"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<GpsLocation(id={self.id}, lat={self.latitude}, lon={self.longitude})>"


def create_db_engine(settings: Settings) -> Engine:
    """
    Create the SQLAlchemy engine for the configured database.

    SQLite gets a busy timeout and cross-thread access (FastAPI runs sync
    handlers in a thread pool). In-memory SQLite shares one connection so
    every session sees the same data. Other databases get a sized pool whose
    checkout waits at most db_timeout_seconds.
    """
    url = make_url(settings.database_url)
    timeout = settings.db_timeout_seconds

    if url.get_backend_name() == "sqlite":
        kwargs = {
            "connect_args": {"check_same_thread": False, "timeout": timeout},
        }
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs = {
            "pool_size": settings.db_pool_size,
            "pool_timeout": timeout,
            "pool_pre_ping": True,
        }
        if url.get_backend_name() == "postgresql":
            kwargs["connect_args"] = {
                "connect_timeout": timeout,
                "options": f"-c statement_timeout={timeout * 1000}",
            }

    engine = create_engine(settings.database_url, **kwargs)
    logger.info(f"Database engine created for backend '{url.get_backend_name()}'")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the engine; objects stay readable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the locations table and index if they do not exist yet."""
    Base.metadata.create_all(engine)
