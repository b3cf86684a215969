"""Database connection and session management.

This module handles the record store connection using SQLAlchemy. Record store
calls are bounded by ``EXTERNAL_CALL_TIMEOUT_SECONDS``.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_portal.config import DATA_DIR, DATABASE_URL, EXTERNAL_CALL_TIMEOUT_SECONDS
from school_portal.models.base import Base
# Import models to ensure they are registered with Base.metadata
import school_portal.models  # noqa: F401


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite+pysqlite://") or ":memory:" in url


def _connect_args(url: str, timeout: float = EXTERNAL_CALL_TIMEOUT_SECONDS) -> dict:
    if url.startswith("sqlite"):
        return {
            "check_same_thread": False,
            "timeout": timeout,
        }
    if url.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    return {}


def _engine_kwargs(url: str, timeout: float = EXTERNAL_CALL_TIMEOUT_SECONDS) -> dict:
    """Build ``create_engine`` keyword arguments for the given URL."""
    kwargs = {
        "connect_args": _connect_args(url, timeout),
        "pool_pre_ping": True,
    }
    # In-memory SQLite uses a single-connection pool without a checkout timeout
    if not _is_memory_sqlite(url):
        kwargs["pool_timeout"] = timeout
    return kwargs


if DATABASE_URL.startswith("sqlite:///") and str(DATA_DIR) in DATABASE_URL:
    # Ensure data directory exists
    DATA_DIR.mkdir(parents=True, exist_ok=True)

engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """Dependency for getting a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
