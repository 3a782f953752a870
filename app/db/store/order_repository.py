"""
OrderRepository: local store for Amazon orders.

Every write that could touch a finished order is a compare-and-swap on
``status != 'LabelBought'``, so neither a resync nor a second purchase can
move an order back or overwrite its label and tracking id.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import orders_table
from app.db.store.base import BaseRepository, log_operation
from app.domain.models.order import AmazonOrder, OrderStatus

logger = logging.getLogger(__name__)

UPSERT_INSERTED = "inserted"
UPSERT_UPDATED = "updated"
UPSERT_SKIPPED = "skipped"

# Campos que la sincronización puede sobrescribir
SYNC_COLUMNS = ("purchase_date", "customer_name", "shipping_address", "items", "is_prime", "status")


class OrderRepository(BaseRepository):
    """Repository for order operations on the local store."""

    @log_operation("verify_table_access_orders")
    async def _verify_table_access(self) -> None:
        """Verify access to the orders table."""
        count = await self._count_rows(orders_table.name)
        logger.debug(f"orders table accessible ({count} rows)")

    @staticmethod
    def _sync_values(order: AmazonOrder) -> Dict[str, Any]:
        data = order.to_dict()
        return {column: data[column] for column in SYNC_COLUMNS}

    async def _upsert_in_session(self, session: AsyncSession, order: AmazonOrder) -> str:
        """
        Conditional upsert of one order inside an open transaction.

        Returns:
            str: inserted, updated or skipped
        """
        values = self._sync_values(order)

        result = await session.execute(
            update(orders_table)
            .where(orders_table.c.amazon_order_id == order.amazon_order_id)
            .where(orders_table.c.status != OrderStatus.LABEL_BOUGHT.value)
            .values(**values, updated_at=func.now())
        )
        if result.rowcount == 1:
            return UPSERT_UPDATED

        exists = await session.execute(
            select(orders_table.c.amazon_order_id).where(orders_table.c.amazon_order_id == order.amazon_order_id)
        )
        if exists.first() is not None:
            logger.debug(f"Order {order.amazon_order_id} already LabelBought, left untouched")
            return UPSERT_SKIPPED

        await session.execute(insert(orders_table).values(amazon_order_id=order.amazon_order_id, **values))
        return UPSERT_INSERTED

    @log_operation()
    async def upsert_orders(self, orders: Iterable[AmazonOrder]) -> Dict[str, int]:
        """
        Reconcile a batch of remote orders in ONE transaction.

        Any failure rolls back the whole batch.

        Args:
            orders: Orders fetched from Amazon

        Returns:
            Dict with inserted, updated and skipped counts
        """
        counts = {UPSERT_INSERTED: 0, UPSERT_UPDATED: 0, UPSERT_SKIPPED: 0}

        async with self.get_session() as session:
            async with session.begin():
                for order in orders:
                    outcome = await self._upsert_in_session(session, order)
                    counts[outcome] += 1

        return counts

    @log_operation()
    async def upsert_order(self, order: AmazonOrder) -> str:
        """
        Conditional upsert of a single order.

        Returns:
            str: inserted, updated or skipped
        """
        async with self.get_session() as session:
            async with session.begin():
                return await self._upsert_in_session(session, order)

    @log_operation()
    async def get_order(self, amazon_order_id: str) -> Optional[AmazonOrder]:
        """
        Get an order by id.

        Returns:
            AmazonOrder or None when it does not exist
        """
        async with self.get_session() as session:
            result = await session.execute(
                select(orders_table).where(orders_table.c.amazon_order_id == amazon_order_id)
            )
            row = result.mappings().first()

        return AmazonOrder.from_dict(dict(row)) if row else None

    @log_operation()
    async def set_label_bought(self, amazon_order_id: str, tracking_id: Optional[str], label_zpl: str) -> bool:
        """
        Move an order to LabelBought with its tracking id and label.

        Status, tracking id and label are written by one statement, and only
        when the order is not already LabelBought.

        Returns:
            bool: True if this call performed the transition
        """
        async with self.get_session() as session:
            async with session.begin():
                result = await session.execute(
                    update(orders_table)
                    .where(orders_table.c.amazon_order_id == amazon_order_id)
                    .where(orders_table.c.status != OrderStatus.LABEL_BOUGHT.value)
                    .values(
                        status=OrderStatus.LABEL_BOUGHT.value,
                        tracking_id=tracking_id,
                        label_zpl=label_zpl,
                        updated_at=func.now(),
                    )
                )

        transitioned = result.rowcount == 1
        if transitioned:
            logger.info(f"Order {amazon_order_id} marked LabelBought (tracking {tracking_id})")
        else:
            logger.warning(f"Order {amazon_order_id} was not transitioned to LabelBought")
        return transitioned

    @log_operation()
    async def list_orders(self, status: Optional[OrderStatus] = None) -> List[AmazonOrder]:
        """
        List orders, most recent purchase first.

        Args:
            status: Optional status filter
        """
        query = select(orders_table).order_by(
            orders_table.c.purchase_date.desc().nulls_last(), orders_table.c.amazon_order_id
        )
        if status is not None:
            query = query.where(orders_table.c.status == OrderStatus(status).value)

        async with self.get_session() as session:
            result = await session.execute(query)
            rows = result.mappings().all()

        return [AmazonOrder.from_dict(dict(row)) for row in rows]
