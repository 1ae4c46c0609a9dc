"""Base repository class."""

from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from gather.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class BaseRepo:
    """Base repository class.

    Every public method accepts an optional ``session``. Without one the
    repository opens, commits and closes its own session (auto-commit mode).
    With one it only flushes and leaves the commit to the caller
    (coordinated mode, see ``transaction_scope``).
    """

    def __init__(self, session_factory: sessionmaker):
        """Initialize the repository."""
        self.session_factory = session_factory

    def _execute_with_session(
        self,
        operation: Callable[[Session], T],
        session: Optional[Session] = None,
        operation_name: str = "unknown",
    ) -> T:
        """Execute a function with the session."""
        if session is not None:
            # Coordinated mode - use provided session, don't commit
            return operation(session)
        # Auto-commit mode - create, use, commit, close
        session = self.session_factory()
        try:
            result = operation(session)
            session.commit()
            return result
        except Exception as e:
            session.rollback()
            self._log_error(operation_name, e)
            raise
        finally:
            session.close()

    def _log_error(self, operation_name: str, error: Exception, **context: Any) -> None:
        """Log an error."""
        logger.error(f"Error in {operation_name}: {error}", extra=context)
