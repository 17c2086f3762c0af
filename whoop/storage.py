"""
Key/value storage backends for connector state.

DbStorage survives restarts (tokens). MemoryStorage lives as long as the
process, which is what the OAuth state nonce needs.
"""

import logging
from typing import Protocol

from db.database import get_db
from db.models import StoredValue

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class DbStorage:
    def get(self, key: str) -> str | None:
        with get_db() as db:
            row = db.get(StoredValue, key)
            return row.value if row is not None else None

    def set(self, key: str, value: str) -> None:
        with get_db() as db:
            row = db.get(StoredValue, key)
            if row is None:
                row = StoredValue(key=key)
                db.add(row)
            row.value = value

    def delete(self, key: str) -> None:
        with get_db() as db:
            row = db.get(StoredValue, key)
            if row is not None:
                db.delete(row)
                logger.debug(f"Deleted stored value {key}")


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)
