"""
Interfaces/Protocols for order and label services (Dependency Inversion Principle).

These protocols define the contracts between the services and their
collaborators: the live SP-API clients and MockAmazonSource on the remote
side, the SQLAlchemy repositories on the local side.
"""

from typing import Any, Protocol

from app.db.amazon_clients.schemas import CreateShipmentPayload, ShippingService
from app.domain.models import AmazonOrder, OrderItem, OrderStatus, ShippingDefaults
from app.domain.value_objects import Dimensions, Weight


class IRemoteOrderSource(Protocol):
    """Protocol for the remote order listing (Orders API)."""

    async def fetch_unshipped_prime_orders(self) -> list[AmazonOrder]:
        """Fetch unshipped Prime orders with their items."""
        ...

    async def fetch_order_items(self, amazon_order_id: str) -> list[OrderItem]:
        """Fetch the items of one order."""
        ...


class IRemoteLabelSource(Protocol):
    """Protocol for the remote label purchase (Merchant Fulfillment API)."""

    async def get_eligible_services(
        self, order: AmazonOrder, weight: Weight, dimensions: Dimensions, ship_from: dict[str, Any]
    ) -> list[ShippingService]:
        """List shipping services eligible for the package."""
        ...

    async def create_shipment(
        self,
        order: AmazonOrder,
        weight: Weight,
        dimensions: Dimensions,
        ship_from: dict[str, Any],
        service: ShippingService,
    ) -> CreateShipmentPayload:
        """Buy the label with the given service."""
        ...


class IOrderStore(Protocol):
    """Protocol for the local order store."""

    async def upsert_orders(self, orders: list[AmazonOrder]) -> dict[str, int]:
        """Reconcile a batch atomically, return inserted/updated/skipped counts."""
        ...

    async def get_order(self, amazon_order_id: str) -> AmazonOrder | None:
        """Get an order or None."""
        ...

    async def set_label_bought(self, amazon_order_id: str, tracking_id: str | None, label_zpl: str) -> bool:
        """Compare-and-swap to LabelBought, return True if this call moved it."""
        ...

    async def list_orders(self, status: OrderStatus | None = None) -> list[AmazonOrder]:
        """List orders, newest first."""
        ...


class IShippingDefaultsStore(Protocol):
    """Protocol for per-sku shipping defaults."""

    async def get(self, sku: str) -> ShippingDefaults | None:
        """Get saved defaults for a sku."""
        ...

    async def upsert(self, defaults: ShippingDefaults) -> None:
        """Insert or overwrite defaults for a sku."""
        ...
