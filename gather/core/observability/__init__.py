"""Structured metric logging."""
