"""Core configuration, logging and shared primitives."""

from .logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
