"""Gather community membership backend."""

__version__ = "0.1.0"
