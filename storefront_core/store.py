"""
store.py — Order Persistence

Contract required by the fulfillment state machine: create an order with its items
atomically, read it by id, and update it conditionally on the version that was read.
The conditional update is the concurrency guard (equivalent to
`UPDATE ... WHERE id = :id AND version = :expected`), so no separate lock manager is used.
"""

import threading
from typing import Dict, Optional, Protocol

from .errors import ConcurrentUpdateError, OrderNotFoundError
from .models import Order


class OrderStore(Protocol):
    def create(self, order: Order) -> Order: ...

    def get(self, order_id: str) -> Optional[Order]: ...

    def update_if(self, order_id: str, expected_version: int, **changes) -> Order: ...

    def count(self) -> int: ...


class InMemoryOrderStore:
    """
    Thread-safe order store held in process memory.

    Orders are immutable models; every update replaces the stored record with a copy
    carrying the changes and `version + 1`.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._orders: Dict[str, Order] = {}

    def create(self, order: Order) -> Order:
        with self._lock:
            if order.id in self._orders:
                raise ValueError(f"Order {order.id} already exists")
            self._orders[order.id] = order
            return order

    def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            return self._orders.get(order_id)

    def update_if(self, order_id: str, expected_version: int, **changes) -> Order:
        """
        Applies `changes` only if the stored version still equals `expected_version`.

        Raises:
            OrderNotFoundError: If the order does not exist.
            ConcurrentUpdateError: If another write happened since the order was read.
        """
        with self._lock:
            current = self._orders.get(order_id)
            if current is None:
                raise OrderNotFoundError(order_id)
            if current.version != expected_version:
                raise ConcurrentUpdateError(order_id, expected_version, current.version)
            updated = current.model_copy(update={**changes, "version": current.version + 1})
            self._orders[order_id] = updated
            return updated

    def count(self) -> int:
        with self._lock:
            return len(self._orders)
