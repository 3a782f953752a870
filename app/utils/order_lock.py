"""
OrderLock - In-process lock for Amazon order label purchases.

Prevents concurrent label purchases for the same Amazon order from
overlapping CLI invocations inside one event loop (bulk buy + single buy).
The database compare-and-swap in ``OrderRepository.set_label_bought`` is
the cross-process guarantee; this lock keeps the same process from paying
Amazon twice before that guarantee can fire.

Usage:
    from app.utils.order_lock import OrderLockRegistry

    locks = OrderLockRegistry()
    async with locks.lock("405-1234567-1234567"):
        await buy_label(...)
"""

import asyncio
import logging
from typing import Dict

logger = logging.getLogger(__name__)

__all__ = ["OrderLock", "OrderLockRegistry"]


class OrderLock:
    """
    Async context manager over one order's ``asyncio.Lock``.

    Example:
        ```python
        async with registry.lock(order_id):
            # Only one coroutine at a time for this order
            await purchase(order_id)
        ```
    """

    def __init__(self, registry: "OrderLockRegistry", amazon_order_id: str):
        self._registry = registry
        self.amazon_order_id = amazon_order_id
        self._lock = None

    async def __aenter__(self):
        """Acquire lock with logging for order operations."""
        self._lock = self._registry._checkout(self.amazon_order_id)
        if self._lock.locked():
            logger.debug(f"Waiting for lock on Amazon order {self.amazon_order_id}")
        try:
            await self._lock.acquire()
        except BaseException:
            self._registry._release(self.amazon_order_id)
            raise
        logger.debug(f"Lock acquired for Amazon order {self.amazon_order_id}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release lock with logging for order operations."""
        self._lock.release()
        self._registry._release(self.amazon_order_id)
        if exc_type:
            logger.debug(
                f"Lock released for Amazon order {self.amazon_order_id} (exception occurred: {exc_type.__name__})"
            )
        else:
            logger.debug(f"Lock released for Amazon order {self.amazon_order_id}")
        return False


class OrderLockRegistry:
    """
    Per-order lock registry.

    Locks are created on demand and dropped once no coroutine holds or waits
    on them, so the registry does not grow with every processed order.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    def lock(self, amazon_order_id: str) -> OrderLock:
        """
        Get the lock context manager for an order.

        Args:
            amazon_order_id: Amazon order ID

        Returns:
            OrderLock: Async context manager
        """
        return OrderLock(self, amazon_order_id)

    def is_locked(self, amazon_order_id: str) -> bool:
        """Check whether the order lock is currently held."""
        lock = self._locks.get(amazon_order_id)
        return bool(lock and lock.locked())

    def _checkout(self, amazon_order_id: str) -> asyncio.Lock:
        lock = self._locks.get(amazon_order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[amazon_order_id] = lock
        self._holders[amazon_order_id] = self._holders.get(amazon_order_id, 0) + 1
        return lock

    def _release(self, amazon_order_id: str) -> None:
        remaining = self._holders.get(amazon_order_id, 1) - 1
        if remaining > 0:
            self._holders[amazon_order_id] = remaining
            return
        self._holders.pop(amazon_order_id, None)
        self._locks.pop(amazon_order_id, None)

    def __len__(self) -> int:
        return len(self._locks)
