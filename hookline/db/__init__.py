"""hookline database layer: Base, engine, exceptions."""

from hookline.db.base import Base
from hookline.db.engine import create_engine, create_session_factory, resolve_database_url, resolve_migration_url
from hookline.db.exceptions import ConfigurationError, DatabaseError

__all__ = [
    "Base",
    "ConfigurationError",
    "DatabaseError",
    "create_engine",
    "create_session_factory",
    "resolve_database_url",
    "resolve_migration_url",
]
