"""Database engine and session configuration.

WHAT:
    Builds the SQLAlchemy engine from the validated settings and exposes the
    session factory plus a FastAPI dependency.

WHY:
    - One place decides pooling and dialect quirks.
    - SQLite (tests, local dev) needs foreign keys switched on per connection,
      otherwise ON DELETE CASCADE and FK checks silently do nothing.

USAGE:
    from clarity.database import get_db

    @router.get("/items")
    def list_items(db: Session = Depends(get_db)):
        return db.query(Model).all()
"""

from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .settings import get_settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine for the given URL.

    Pool settings for PostgreSQL:
    - pool_size / max_overflow: 10 persistent, up to 30 under load
    - pool_recycle: drop connections older than an hour
    - pool_pre_ping: validate before use

    NOTE: SQLite does not support pool_size/max_overflow. In-memory SQLite uses
    a StaticPool so every session sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


_database_url = get_settings().DATABASE_URL

# No engine when validation was skipped without a DATABASE_URL (image builds)
engine = create_db_engine(_database_url) if _database_url else None

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# Base is defined in clarity.models to ensure a single registry across the app
from .models import Base  # noqa: E402,F401


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for FastAPI dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

