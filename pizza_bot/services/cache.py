"""
Progress/Cache Store for Pizza Bot
==================================

Each end-user owns exactly one live Order and one Customer snapshot, stored
under two keys:

    order:<userId>     -> serialized Order
    customer:<userId>  -> serialized Customer

Stores hold JSON-compatible dicts. OrderRepository converts between those
dicts and the pydantic models, so the order manager only sees typed objects.

Backends:
---------
- InMemoryCacheStore: dict guarded by a threading.Lock. Resets on restart.
- DatabaseCacheStore: SQLAlchemy table `cache_entries` with upsert writes.

Consistency:
------------
Reads and writes are last-write-wins. There is no version token, so two
processes mutating the same user's order at once can lose an update. Callers
are expected to serialize operations per user (one conversation turn at a
time).
"""

import copy
import logging
import threading
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from ..models import CacheEntry
from ..schemas.orders import Customer, Order

logger = logging.getLogger(__name__)


def order_key(user_id: str) -> str:
    return f"order:{user_id}"


def customer_key(user_id: str) -> str:
    return f"customer:{user_id}"


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def set(self, key: str, value: Dict[str, Any]) -> None:
        ...


# =============================================================================
# Backends
# =============================================================================

class InMemoryCacheStore:
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def clear(self) -> int:
        with self._lock:
            count = len(self._data)
            self._data.clear()
            logger.info("Cleared %d entries from cache", count)
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class DatabaseCacheStore:
    """
    Store backed by the cache_entries table.

    Each call opens its own session so the store can be shared across
    requests.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        db = self._session_factory()
        try:
            entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
            return entry.value if entry else None
        finally:
            db.close()

    def set(self, key: str, value: Dict[str, Any]) -> None:
        db = self._session_factory()
        try:
            entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
            if entry:
                entry.value = value
                # JSON columns don't track in-place changes
                flag_modified(entry, "value")
            else:
                db.add(CacheEntry(key=key, value=value))
            db.commit()
        finally:
            db.close()


# =============================================================================
# Repository
# =============================================================================

class OrderRepository:
    """Typed access to the per-user Order and Customer snapshots."""

    def __init__(self, store: CacheStore):
        self._store = store

    def get_order(self, user_id: str) -> Optional[Order]:
        data = self._store.get(order_key(user_id))
        return Order.model_validate(data) if data is not None else None

    def save_order(self, user_id: str, order: Order) -> None:
        self._store.set(order_key(user_id), order.model_dump(mode="json"))

    def get_customer(self, user_id: str) -> Optional[Customer]:
        data = self._store.get(customer_key(user_id))
        return Customer.model_validate(data) if data is not None else None

    def save_customer(self, user_id: str, customer: Customer) -> None:
        self._store.set(customer_key(user_id), customer.model_dump(mode="json"))
