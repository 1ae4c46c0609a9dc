"""Mapping of domain exceptions onto HTTP errors."""

from fastapi import HTTPException, status

from gather.core.exceptions import NotFoundError, PermissionDeniedError
from gather.core.logging import get_logger

logger = get_logger(__name__)


def to_http_exception(error: Exception, failure: str) -> HTTPException:
    """Translate a service exception into the HTTPException to raise.

    ``failure`` completes the 500 detail, e.g. "join community".
    """
    if isinstance(error, HTTPException):
        return error
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))
    if isinstance(error, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    logger.exception(f"Failed to {failure}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {failure}: {str(error)}",
    )
