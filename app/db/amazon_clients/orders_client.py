"""
Cliente de Orders API v0.

Obtiene las órdenes MFN sin enviar, filtra las Prime y las hidrata
con sus items.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List

from app.db.amazon_clients.base_client import BaseAmazonSPClient
from app.db.amazon_clients.converters import convert_order, convert_order_items
from app.db.amazon_clients.schemas import GetOrderItemsPayload, GetOrdersPayload
from app.domain.models.order import AmazonOrder, OrderItem

logger = logging.getLogger(__name__)


class AmazonOrdersClient(BaseAmazonSPClient):
    """
    Client for Orders API operations.
    """

    ORDERS_PATH = "/orders/v0/orders"

    async def fetch_unshipped_prime_orders(self) -> List[AmazonOrder]:
        """
        Get unshipped MFN Prime orders with their items.

        Returns:
            List[AmazonOrder]: Orders ready to reconcile
        """
        created_after = datetime.now(timezone.utc) - timedelta(days=self.settings.ORDERS_LOOKBACK_DAYS)
        base_params = {
            "MarketplaceIds": self.marketplace_id,
            "OrderStatuses": "Unshipped",
            "FulfillmentChannels": "MFN",
            "CreatedAfter": created_after.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }

        orders = []
        next_token = None
        page = 0
        while True:
            page += 1
            params = {"MarketplaceIds": self.marketplace_id, "NextToken": next_token} if next_token else base_params
            data = await self._call(
                lambda params=params: self._request("GET", self.ORDERS_PATH, operation="getOrders", params=params),
                context="getOrders",
            )
            payload = self._parse(GetOrdersPayload, data, "getOrders")
            orders.extend(payload.Orders)

            next_token = payload.NextToken
            if not next_token:
                break
            logger.debug(f"getOrders page {page} done, following NextToken")

        if not orders:
            logger.info("No unshipped orders found", extra={"operation": "fetch_unshipped_prime_orders"})
            return []

        prime_orders = [order for order in orders if order.IsPrime]

        hydrated = []
        for order in prime_orders:
            items = await self.fetch_order_items(order.AmazonOrderId)
            hydrated.append(convert_order(order, items))

        logger.info(
            f"Fetched {len(prime_orders)} Prime orders with items ({len(orders)} unshipped)",
            extra={
                "operation": "fetch_unshipped_prime_orders",
                "total_orders": len(orders),
                "prime_orders": len(prime_orders),
            },
        )
        return hydrated

    async def fetch_order_items(self, amazon_order_id: str) -> List[OrderItem]:
        """
        Get the items of one order, following NextToken.

        Args:
            amazon_order_id: Amazon order id

        Returns:
            List[OrderItem]: Ordered items
        """
        path = f"{self.ORDERS_PATH}/{amazon_order_id}/orderItems"
        items = []
        next_token = None

        while True:
            params = {"NextToken": next_token} if next_token else None
            data = await self._call(
                lambda params=params: self._request("GET", path, operation="getOrderItems", params=params),
                context=f"getOrderItems {amazon_order_id}",
            )
            payload = self._parse(GetOrderItemsPayload, data, "getOrderItems")
            items.extend(payload.OrderItems)

            next_token = payload.NextToken
            if not next_token:
                break

        return convert_order_items(items)
