"""Quiz history persistence."""

from .storage import InMemoryStorage, JsonFileStorage, KeyValueStorage
from .store import APP_DATA_KEY, LAST_USER_KEY, HistoryStore

__all__ = [
    "APP_DATA_KEY",
    "LAST_USER_KEY",
    "HistoryStore",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
]
