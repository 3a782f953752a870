"""
Conversión de payloads de Orders API a modelos de dominio.
"""

import logging
from datetime import datetime
from typing import List, Optional

from app.db.amazon_clients.schemas import AmazonOrderItemPayload, AmazonOrderPayload
from app.domain.models.order import AmazonOrder, OrderItem, OrderStatus

logger = logging.getLogger(__name__)


def parse_purchase_date(value: Optional[str]) -> Optional[datetime]:
    """Parsea PurchaseDate ISO 8601; valores inválidos se ignoran."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable PurchaseDate: {value}")
        return None


def convert_order_items(items: List[AmazonOrderItemPayload]) -> List[OrderItem]:
    """
    Convierte items de getOrderItems.

    Args:
        items: Items tal como los devuelve Amazon

    Returns:
        List[OrderItem]: Items de dominio (sku + cantidad)
    """
    return [
        OrderItem(sku=item.SellerSKU or "", quantity=item.QuantityOrdered, order_item_id=item.OrderItemId)
        for item in items
    ]


def convert_order(order: AmazonOrderPayload, items: List[OrderItem]) -> AmazonOrder:
    """
    Convierte una orden de getOrders más sus items a AmazonOrder.

    Args:
        order: Orden tal como la devuelve Amazon
        items: Items ya convertidos

    Returns:
        AmazonOrder: Orden de dominio en estado Unshipped
    """
    address = order.ShippingAddress.model_dump(exclude_none=True) if order.ShippingAddress else {}

    return AmazonOrder(
        amazon_order_id=order.AmazonOrderId,
        purchase_date=parse_purchase_date(order.PurchaseDate),
        customer_name=address.get("Name") or "Unknown",
        shipping_address=address,
        items=items,
        is_prime=bool(order.IsPrime),
        status=OrderStatus.UNSHIPPED,
    )
