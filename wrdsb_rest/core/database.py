"""
database.py — Database Session & Connection Management

Purpose:
- Create and provide access to the user directory database.
- Manage SQLAlchemy Engine + Session lifecycle.
- Expose a FastAPI dependency `get_db()` that yields a session per-request.
- Own the declarative `Base` shared by every ORM model.

Key Characteristics:
- Synchronous SQLAlchemy engine.
- No migrations — `init_db()` creates missing tables.
- Session is opened at the start of a request and closed after the response.
  Commits are issued by the controller that mutates; anything left
  uncommitted is rolled back on close.
"""

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from wrdsb_rest.core.config import settings
from wrdsb_rest.core.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

# -----------------------------------------------------------------------------
# SQLAlchemy Engine
# -----------------------------------------------------------------------------

def make_engine(db_url: str) -> Engine:
    """
    Build an engine for `db_url`.

    SQLite needs `check_same_thread=False` because FastAPI runs sync
    endpoints in a worker thread pool.
    """
    connect_args = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    return create_engine(
        db_url,
        connect_args=connect_args,
        pool_pre_ping=True  # Ensures connections are valid before use
    )


engine = make_engine(settings.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def init_db(bind: Engine = None) -> None:
    """
    Create all tables known to `Base` on `bind` (default: the app engine).
    """
    # Import models so they register on Base.metadata
    from wrdsb_rest import models  # noqa: F401

    target = bind if bind is not None else engine
    Base.metadata.create_all(bind=target)
    logger.info("Database tables ensured on %s", target.url)

# -----------------------------------------------------------------------------
# FastAPI Dependency
# -----------------------------------------------------------------------------

def get_db() -> Iterator[Session]:
    """
    FastAPI dependency: yields a database session for the duration of the request.

    Usage in API endpoint:
        def endpoint(db: Session = Depends(get_db)):
            db.query(...)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
