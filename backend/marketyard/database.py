from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, event, DateTime
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.types import TypeDecorator
from marketyard.config import get_settings

settings = get_settings()


def enable_sqlite_savepoints(bind):
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside it.

    pysqlite defers BEGIN until the first DML statement, which turns an
    early SAVEPOINT into the outer transaction.
    """
    @event.listens_for(bind, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(bind, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return bind


# SQLite needs different config than PostgreSQL
if settings.database_url.startswith("sqlite"):
    engine = enable_sqlite_savepoints(create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False}  # Needed for SQLite
    ))
else:
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """DateTime that always comes back timezone-aware (UTC).

    SQLite drops tzinfo on the way in, so values are normalised to UTC
    before binding and re-tagged on load.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_db():
    """Dependency for getting database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables for the nine entity kinds."""
    # Import models so they register on Base.metadata
    from marketyard import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
