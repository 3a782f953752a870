"""
Order Synchronizer - pulls unshipped Prime orders from Amazon into the local store.

Architecture:
- Fetch: IRemoteOrderSource lists unshipped MFN Prime orders with their items
  (every remote call already goes through the RetryHandler)
- Reconcile: IOrderStore.upsert_orders applies the whole batch in one
  transaction; LabelBought orders are never touched
- Track: counts, duration and retries observed during the sync
"""

import logging
import time
from datetime import UTC, datetime
from typing import Any

from app.services.orders.interfaces import IOrderStore, IRemoteOrderSource
from app.utils.error_handler import AppException, SyncException
from app.utils.retry_handler import RetryEvent, RetryHandler

logger = logging.getLogger(__name__)


class OrderSynchronizer:
    """
    Synchronizes remote Amazon orders into the local order store.

    The reconciliation is all-or-nothing: if the remote fetch or any write
    fails, nothing is committed and a SyncException is raised.
    """

    def __init__(
        self,
        order_source: IRemoteOrderSource,
        order_store: IOrderStore,
        retry_handler: RetryHandler | None = None,
    ):
        """
        Initialize the synchronizer.

        Args:
            order_source: Live Orders API client or MockAmazonSource
            order_store: Local order repository
            retry_handler: Handler shared with the source; its retry events are counted
        """
        self.order_source = order_source
        self.order_store = order_store
        self.retry_handler = retry_handler

        self.stats = {
            "total_syncs": 0,
            "failed_syncs": 0,
            "retries_observed": 0,
            "last_sync_time": None,
        }
        self._retries_in_run = 0

        if retry_handler is not None:
            retry_handler.add_listener(self._on_retry)

    def _on_retry(self, event: RetryEvent) -> None:
        self._retries_in_run += 1
        self.stats["retries_observed"] += 1

    async def sync_orders(self) -> dict[str, Any]:
        """
        Fetch unshipped Prime orders and reconcile them locally.

        Returns:
            dict: synced, inserted, updated, skipped, retries, duration_seconds

        Raises:
            SyncException: If the fetch or the reconciliation fails
        """
        start = time.monotonic()
        self._retries_in_run = 0
        self.stats["total_syncs"] += 1

        logger.info("Starting Amazon order sync")

        try:
            orders = await self.order_source.fetch_unshipped_prime_orders()
        except Exception as e:
            self.stats["failed_syncs"] += 1
            logger.error(f"Failed to fetch orders from Amazon: {e}")
            raise SyncException(
                message=f"Failed to fetch orders from Amazon: {str(e)}",
                service="amazon",
                operation="fetch_unshipped_prime_orders",
                sync_stats={"retries": self._retries_in_run},
                details=self._failure_details(e),
            ) from e

        logger.info(f"Fetched {len(orders)} unshipped Prime orders")

        try:
            counts = await self.order_store.upsert_orders(orders)
        except Exception as e:
            self.stats["failed_syncs"] += 1
            logger.error(f"Order reconciliation rolled back: {e}")
            raise SyncException(
                message=f"Failed to save orders, nothing was committed: {str(e)}",
                service="database",
                operation="upsert_orders",
                sync_stats={"fetched": len(orders), "retries": self._retries_in_run},
                details=self._failure_details(e),
            ) from e

        duration = round(time.monotonic() - start, 3)
        self.stats["last_sync_time"] = datetime.now(UTC).isoformat()

        result = {
            "synced": len(orders),
            "inserted": counts.get("inserted", 0),
            "updated": counts.get("updated", 0),
            "skipped": counts.get("skipped", 0),
            "retries": self._retries_in_run,
            "duration_seconds": duration,
        }
        logger.info(
            f"Order sync completed: {result['synced']} orders "
            f"({result['inserted']} new, {result['updated']} updated, {result['skipped']} skipped) in {duration}s"
        )
        return result

    @staticmethod
    def _failure_details(error: Exception) -> dict[str, Any]:
        if isinstance(error, AppException):
            return {"cause_error_code": error.error_code.value}
        return {"cause_error_type": type(error).__name__}

    def get_stats(self) -> dict[str, Any]:
        return dict(self.stats)
