"""
ShippingDefaultsRepository: last-write-wins weight/dimensions per sku.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from app.db.models import shipping_defaults_table
from app.db.store.base import BaseRepository, log_operation
from app.domain.models.shipping_defaults import ShippingDefaults

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class ShippingDefaultsRepository(BaseRepository):
    """Repository for product_shipping_defaults."""

    @log_operation("verify_table_access_shipping_defaults")
    async def _verify_table_access(self) -> None:
        count = await self._count_rows(shipping_defaults_table.name)
        logger.debug(f"product_shipping_defaults table accessible ({count} rows)")

    @log_operation()
    async def get(self, sku: str) -> Optional[ShippingDefaults]:
        """
        Get saved defaults for a sku.

        Returns:
            ShippingDefaults or None
        """
        async with self.get_session() as session:
            result = await session.execute(
                select(shipping_defaults_table).where(shipping_defaults_table.c.sku == sku)
            )
            row = result.mappings().first()

        return ShippingDefaults.from_dict(dict(row)) if row else None

    @log_operation()
    async def upsert(self, defaults: ShippingDefaults) -> None:
        """
        Insert or overwrite defaults for a sku.

        Args:
            defaults: Weight and dimensions to save
        """
        dialect_insert = _DIALECT_INSERTS.get(self.conn_db.dialect_name)
        if dialect_insert is None:
            raise NotImplementedError(f"Upsert not supported for dialect {self.conn_db.dialect_name}")

        values = defaults.to_dict()
        statement = dialect_insert(shipping_defaults_table).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=[shipping_defaults_table.c.sku],
            set_={
                **{column: statement.excluded[column] for column in values if column != "sku"},
                "updated_at": func.now(),
            },
        )

        async with self.get_session() as session:
            async with session.begin():
                await session.execute(statement)

        logger.debug(f"Shipping defaults saved for sku {defaults.sku}")
