"""Database engine, session factory and time helpers."""
