"""Keyed critical sections for orders and products.

Every stock mutation for a product and every state transition of an order's
picking job runs while holding that key's lock. The lock spans the whole unit
of work, commit included.
"""

import threading
from contextlib import ExitStack, contextmanager


class KeyedLocks:
    """A registry of one ``threading.Lock`` per key, created on first use."""

    def __init__(self):
        self._locks: dict[tuple, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, *key) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *key):
        with self.lock_for(*key):
            yield

    @contextmanager
    def hold_many(self, tenant_id: str, ids):
        """Acquire several keys in sorted order so two holders never deadlock."""
        with ExitStack() as stack:
            for identifier in sorted(set(ids)):
                stack.enter_context(self.hold(tenant_id, identifier))
            yield


order_locks = KeyedLocks()
product_locks = KeyedLocks()
