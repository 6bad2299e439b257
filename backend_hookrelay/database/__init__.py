"""
Durable subscription state: confirmed tip per subscription.

create_state_store("") gives the in-memory backend; any SQLAlchemy URL gives
SqlStateStore.
"""

from backend_hookrelay.database.state_store import InMemoryStateStore, StateStore
from backend_hookrelay.database.sql_store import SqlStateStore


def create_state_store(url: str = "") -> StateStore:
    """Return the backend for url (empty → in-memory)."""
    url = (url or "").strip()
    if not url or url == "memory://":
        return InMemoryStateStore()
    return SqlStateStore(url)


__all__ = [
    "InMemoryStateStore",
    "SqlStateStore",
    "StateStore",
    "create_state_store",
]
