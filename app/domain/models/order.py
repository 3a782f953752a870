"""
Order domain model (Aggregate Root).

Represents an Amazon MFN Prime order as stored locally, with the status
ratchet Unshipped -> LabelBought.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class OrderStatus(str, Enum):
    """Local order status. Only moves forward."""

    UNSHIPPED = "Unshipped"
    LABEL_BOUGHT = "LabelBought"

    @property
    def is_terminal(self) -> bool:
        return self is OrderStatus.LABEL_BOUGHT


@dataclass(frozen=True)
class OrderItem:
    """
    Ordered line item.

    Attributes:
        sku: Seller SKU
        quantity: Quantity ordered
        order_item_id: Amazon OrderItemId, needed by Merchant Fulfillment
    """

    sku: str
    quantity: int = 1
    order_item_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"sku": self.sku, "quantity": self.quantity}
        if self.order_item_id:
            data["order_item_id"] = self.order_item_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            sku=data.get("sku") or "",
            quantity=int(data.get("quantity") or 0),
            order_item_id=data.get("order_item_id"),
        )


@dataclass
class AmazonOrder:
    """
    Domain model representing an Amazon order (Aggregate Root).

    Created and refreshed by the order synchronizer; moved to LabelBought,
    with tracking id and label, only by the label purchase orchestrator.

    Attributes:
        amazon_order_id: Marketplace order id (unique, immutable)
        purchase_date: Purchase timestamp
        customer_name: Shipping address name, "Unknown" when absent
        shipping_address: Structured address as returned by Amazon
        items: Ordered line items
        is_prime: Prime-eligibility flag
        status: Local status
        tracking_id: Carrier tracking id once a label is bought
        label_zpl: Final label markup once a label is bought
    """

    amazon_order_id: str
    purchase_date: datetime | None = None
    customer_name: str = "Unknown"
    shipping_address: dict[str, Any] = field(default_factory=dict)
    items: list[OrderItem] = field(default_factory=list)
    is_prime: bool = True
    status: OrderStatus = OrderStatus.UNSHIPPED
    tracking_id: str | None = None
    label_zpl: str | None = None

    def __post_init__(self) -> None:
        """Validate order data after initialization."""
        if not self.amazon_order_id:
            raise ValueError("Amazon order id is required")

        if not isinstance(self.status, OrderStatus):
            self.status = OrderStatus(self.status)

        if not self.customer_name:
            self.customer_name = "Unknown"

    @property
    def first_item(self) -> OrderItem | None:
        """First line item, used for the SKU/QTY label block."""
        return self.items[0] if self.items else None

    @property
    def distinct_skus(self) -> list[str]:
        """Distinct non-empty skus in order of appearance."""
        seen: list[str] = []
        for item in self.items:
            if item.sku and item.sku not in seen:
                seen.append(item.sku)
        return seen

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_label_bought(self) -> bool:
        return self.status is OrderStatus.LABEL_BOUGHT

    @property
    def has_label(self) -> bool:
        return bool(self.label_zpl)

    def to_dict(self) -> dict[str, Any]:
        """Convert order to dictionary for persistence."""
        return {
            "amazon_order_id": self.amazon_order_id,
            "purchase_date": self.purchase_date,
            "customer_name": self.customer_name,
            "shipping_address": self.shipping_address,
            "items": [item.to_dict() for item in self.items],
            "is_prime": self.is_prime,
            "status": self.status.value,
            "tracking_id": self.tracking_id,
            "label_zpl": self.label_zpl,
        }

    def to_summary(self) -> dict[str, Any]:
        """Listing view without the label payload."""
        data = self.to_dict()
        data.pop("label_zpl")
        data["purchase_date"] = self.purchase_date.isoformat() if self.purchase_date else None
        data["has_label"] = self.has_label
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AmazonOrder":
        """Create order from dictionary (database row or fixture)."""
        purchase_date = data.get("purchase_date")
        if isinstance(purchase_date, str):
            purchase_date = datetime.fromisoformat(purchase_date.replace("Z", "+00:00"))

        return cls(
            amazon_order_id=data["amazon_order_id"],
            purchase_date=purchase_date,
            customer_name=data.get("customer_name") or "Unknown",
            shipping_address=data.get("shipping_address") or {},
            items=[
                item if isinstance(item, OrderItem) else OrderItem.from_dict(item) for item in data.get("items") or []
            ],
            is_prime=bool(data.get("is_prime", True)),
            status=OrderStatus(data.get("status") or OrderStatus.UNSHIPPED.value),
            tracking_id=data.get("tracking_id"),
            label_zpl=data.get("label_zpl"),
        )
