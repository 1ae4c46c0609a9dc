"""Database connection manager and session factory."""

from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gather.core.config import settings

APP_DATABASE_URL = settings.APP_DATABASE_URL


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Build engine keyword arguments for the configured backend."""
    if database_url.startswith("sqlite"):
        # SQLite pools do not accept sizing arguments
        return {
            "connect_args": {"check_same_thread": False},
            "echo": settings.SQL_ECHO,
        }
    return {
        "pool_size": settings.POOL_SIZE,
        "max_overflow": settings.MAX_OVERFLOW,
        "pool_recycle": settings.POOL_RECYCLE,
        "pool_timeout": settings.POOL_TIMEOUT,
        "pool_pre_ping": settings.POOL_PRE_PING,  # Validates connections before use
        "echo": settings.SQL_ECHO,  # SQL logging
    }


# Create engine with connection pooling (QueuePool is default)
engine = create_engine(APP_DATABASE_URL, **_engine_options(APP_DATABASE_URL))

# Session factory; objects stay usable after the repository commits
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


def get_session_local() -> sessionmaker:
    """Get the SessionLocal factory for testing or advanced use cases."""
    return SessionLocal
