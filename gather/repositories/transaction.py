"""Transaction context manager for coordinated multi-repository operations."""

from contextlib import contextmanager, nullcontext
from typing import ContextManager, Generator, Optional

from sqlalchemy.orm import Session, sessionmaker


@contextmanager
def transaction_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for coordinated multi-repository operations.

    Provides a session that can be shared across multiple repositories
    for atomic operations spanning multiple aggregates.

    Usage:
        with transaction_scope(SessionLocal) as session:
            community_repo.set_members(..., session=session)
            membership_repo.ensure_active(..., session=session)
            # Both operations committed together

    Args:
        session_factory: SQLAlchemy session factory (e.g., SessionLocal)

    Yields:
        Session: SQLAlchemy session for coordinated operations

    Raises:
        Exception: Any exception from repository operations (after rollback)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        try:
            session.close()
        except Exception:
            # Ignore close errors - session cleanup is best effort
            pass


def unit_of_work(
    session_factory: sessionmaker, session: Optional[Session] = None
) -> ContextManager[Session]:
    """Join the caller's session when given, otherwise open a new transaction."""
    if session is not None:
        return nullcontext(session)
    return transaction_scope(session_factory)
