"""Synchronous key/value backends used underneath the cache layer."""

from typing import Dict, List, Optional, Protocol

from ...config.logging import get_logger
from ...ormdb.database import Database
from ...ormdb.models import KeyValueEntry

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Plain string store; TTL semantics live in CacheStore."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class MemoryKeyValueStore:
    """Process-local store, used in tests and for throwaway sessions."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class SqlKeyValueStore:
    """Key/value store persisted through SQLAlchemy."""

    def __init__(self, database: Database):
        self.database = database
        self.logger = logger.bind(component="sql_key_value_store")

    def get(self, key: str) -> Optional[str]:
        with self.database.session_scope() as session:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        with self.database.session_scope() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value

    def remove(self, key: str) -> None:
        with self.database.session_scope() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)

    def keys(self) -> List[str]:
        with self.database.session_scope() as session:
            return [row[0] for row in session.query(KeyValueEntry.key).all()]
