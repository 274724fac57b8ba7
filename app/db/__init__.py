"""Relational persistence: SQLAlchemy models, engine and unit of work."""
