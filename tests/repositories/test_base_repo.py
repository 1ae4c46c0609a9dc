"""Tests for BaseRepo."""

from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from gather.repositories.base_repo import BaseRepo


class SampleRepo(BaseRepo):
    """Sample implementation of BaseRepo for testing."""

    def sample_operation(self, param, session=None):
        """Sample method that uses _execute_with_session."""
        return self._execute_with_session(
            lambda s: self._sample_operation_impl(s, param),
            session=session,
            operation_name="sample_operation",
        )

    def _sample_operation_impl(self, session, param):
        """Test implementation that can succeed or fail."""
        if param == "fail":
            raise IntegrityError("Test error", None, None)
        session.flush()
        return f"success_{param}"


class TestBaseRepo:
    """Test cases for BaseRepo."""

    @pytest.fixture
    def mock_session_factory(self):
        """Mock session factory."""
        mock_session = Mock()
        mock_factory = Mock(return_value=mock_session)
        return mock_factory, mock_session

    @pytest.fixture
    def sample_repo(self, mock_session_factory):
        """Sample repository instance."""
        factory, _ = mock_session_factory
        return SampleRepo(factory)

    def test_auto_commit_mode_success(self, sample_repo, mock_session_factory):
        """Test auto-commit mode commits and closes its own session."""
        factory, mock_session = mock_session_factory

        result = sample_repo.sample_operation("test_param")

        assert result == "success_test_param"
        factory.assert_called_once()
        mock_session.commit.assert_called_once()
        mock_session.close.assert_called_once()
        mock_session.rollback.assert_not_called()

    def test_auto_commit_mode_failure_rolls_back_and_logs(
        self, sample_repo, mock_session_factory
    ):
        """Test auto-commit mode rolls back, logs and re-raises on failure."""
        _, mock_session = mock_session_factory

        with patch("gather.repositories.base_repo.logger") as mock_logger:
            with pytest.raises(IntegrityError):
                sample_repo.sample_operation("fail")

        mock_session.rollback.assert_called_once()
        mock_session.commit.assert_not_called()
        mock_session.close.assert_called_once()
        mock_logger.error.assert_called_once()
        assert "sample_operation" in mock_logger.error.call_args[0][0]

    def test_coordinated_mode_leaves_commit_to_caller(
        self, sample_repo, mock_session_factory
    ):
        """Test coordinated mode uses the given session without committing."""
        factory, _ = mock_session_factory
        provided_session = Mock()

        result = sample_repo.sample_operation("x", session=provided_session)

        assert result == "success_x"
        factory.assert_not_called()
        provided_session.flush.assert_called_once()
        provided_session.commit.assert_not_called()
        provided_session.close.assert_not_called()

    def test_coordinated_mode_propagates_errors_without_rollback(self, sample_repo):
        """Test coordinated mode leaves rollback to the transaction owner."""
        provided_session = Mock()

        with pytest.raises(IntegrityError):
            sample_repo.sample_operation("fail", session=provided_session)

        provided_session.rollback.assert_not_called()
