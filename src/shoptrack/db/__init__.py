"""Persistence layer: SQLAlchemy tables, session management and store helpers."""
