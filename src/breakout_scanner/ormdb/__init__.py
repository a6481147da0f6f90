"""SQLAlchemy persistence for the key/value store."""

from .database import Base, Database, create_database_engine
from .models import KeyValueEntry

__all__ = ["Base", "Database", "create_database_engine", "KeyValueEntry"]
