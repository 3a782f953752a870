"""
LabelPurchaseOrchestrator - coordinates Prime label purchase and reprint.

Single purchase flow:
1. Validate weight and dimensions
2. Load the local order (must exist and not be LabelBought)
3. Ask Amazon for eligible services and pick the cheapest
4. Create the shipment and decode the returned label
5. Inject the SKU/QTY block
6. Persist label, tracking id and LabelBought in one conditional update
7. Save shipping defaults for single-sku orders (best effort)

Bulk purchase and bulk reprint apply the single flow to each id in input
order and record per-id failures instead of raising.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.core.config import get_settings
from app.db.amazon_clients.schemas import ShippingService
from app.domain.models import AmazonOrder, BatchReport, ShippingDefaults
from app.domain.value_objects import Dimensions, Weight
from app.services.labels.label_decoder import decode_label_contents, extract_shipment_label
from app.services.labels.validators import ShipmentRequestValidator
from app.services.labels.zpl_injector import UNKNOWN_SKU, ZplInjector
from app.services.orders.interfaces import IOrderStore, IRemoteLabelSource, IShippingDefaultsStore
from app.utils.error_handler import (
    LabelAlreadyPurchasedException,
    LabelNotFoundException,
    NoEligibleServicesException,
    OrderNotFoundException,
    ValidationException,
    ZplInjectionRejectedException,
    error_code_of,
    log_error,
)
from app.utils.order_lock import OrderLockRegistry

logger = logging.getLogger(__name__)


@dataclass
class LabelPurchaseResult:
    """Result of a single label purchase."""

    amazon_order_id: str
    zpl: str
    tracking_id: Optional[str] = None
    shipment_id: Optional[str] = None
    shipping_service_id: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    injection_warnings: List[str] = field(default_factory=list)

    @property
    def all_warnings(self) -> List[str]:
        return [*self.warnings, *self.injection_warnings]

    def to_dict(self, include_zpl: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "amazon_order_id": self.amazon_order_id,
            "tracking_id": self.tracking_id,
            "shipment_id": self.shipment_id,
            "shipping_service_id": self.shipping_service_id,
            "warnings": list(self.warnings),
            "injection_warnings": list(self.injection_warnings),
        }
        if include_zpl:
            data["zpl"] = self.zpl
        return data


def select_cheapest_service(services: List[ShippingService]) -> ShippingService:
    """Cheapest service by cost; first one wins ties."""
    return min(services, key=lambda service: service.cost)


class LabelPurchaseOrchestrator:
    """
    Orchestrates label purchase, bulk purchase and reprint.

    All collaborators are injected so tests can run the whole flow against
    MockAmazonSource and an in-memory database.
    """

    def __init__(
        self,
        label_source: IRemoteLabelSource,
        order_store: IOrderStore,
        defaults_store: IShippingDefaultsStore,
        injector: Optional[ZplInjector] = None,
        request_validator: Optional[ShipmentRequestValidator] = None,
        lock_registry: Optional[OrderLockRegistry] = None,
        ship_from: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize orchestrator with service dependencies.

        Args:
            label_source: Merchant Fulfillment client or mock source
            order_store: Local order repository
            defaults_store: Shipping defaults repository
            injector: SKU/QTY injector (default: configured from settings)
            request_validator: Weight/dimension/id validator
            lock_registry: Per-order purchase locks
            ship_from: Ship-from address (default: settings.ship_from_address)
        """
        self.label_source = label_source
        self.order_store = order_store
        self.defaults_store = defaults_store
        self.injector = injector or ZplInjector()
        self.request_validator = request_validator or ShipmentRequestValidator()
        self.lock_registry = lock_registry or OrderLockRegistry()
        self.ship_from = ship_from or get_settings().ship_from_address

    @staticmethod
    def _require_order_id(amazon_order_id: Any) -> str:
        if not isinstance(amazon_order_id, str) or not amazon_order_id.strip():
            raise ValidationException(
                message="Order id is required", field="amazon_order_id", invalid_value=amazon_order_id
            )
        return amazon_order_id.strip()

    async def _load_order(self, amazon_order_id: str) -> AmazonOrder:
        order = await self.order_store.get_order(amazon_order_id)
        if order is None:
            raise OrderNotFoundException(amazon_order_id)
        return order

    async def buy_label(self, amazon_order_id: str, weight: Weight, dimensions: Dimensions) -> LabelPurchaseResult:
        """
        Buy the Prime label for one order.

        Args:
            amazon_order_id: Local order id
            weight: Package weight
            dimensions: Package dimensions

        Returns:
            LabelPurchaseResult: Final ZPL with the SKU/QTY block and tracking id

        Raises:
            ValidationException: Invalid weight, dimensions or id
            OrderNotFoundException: Order not in the local store
            LabelAlreadyPurchasedException: Order already LabelBought
            NoEligibleServicesException: Amazon returned no services
            LabelDataMissingException: createShipment response without label
            ZplInjectionRejectedException: Label could not take the SKU/QTY block
            AmazonAPIException: Remote failure after retries
        """
        amazon_order_id = self._require_order_id(amazon_order_id)
        warnings = self.request_validator.validate_package(weight, dimensions)
        return await self._purchase(amazon_order_id, weight, dimensions, warnings)

    async def _purchase(
        self, amazon_order_id: str, weight: Weight, dimensions: Dimensions, warnings: List[str]
    ) -> LabelPurchaseResult:
        async with self.lock_registry.lock(amazon_order_id):
            order = await self._load_order(amazon_order_id)
            if order.is_label_bought:
                raise LabelAlreadyPurchasedException(amazon_order_id)

            logger.info(f"Buying label for order {amazon_order_id} ({weight}, {len(order.items)} items)")

            services = await self.label_source.get_eligible_services(order, weight, dimensions, self.ship_from)
            if not services:
                raise NoEligibleServicesException(amazon_order_id)

            service = select_cheapest_service(services)
            logger.debug(
                f"Selected service {service.ShippingServiceId} for {amazon_order_id} "
                f"(cost {service.cost}, {len(services)} eligible)"
            )

            payload = await self.label_source.create_shipment(order, weight, dimensions, self.ship_from, service)
            label = extract_shipment_label(payload, amazon_order_id)
            original_zpl = decode_label_contents(label.contents)

            first_item = order.first_item
            sku = first_item.sku if first_item else UNKNOWN_SKU
            quantity = first_item.quantity if first_item else 1

            injection = self.injector.inject(original_zpl, sku, quantity)
            if not injection.ok:
                raise ZplInjectionRejectedException(
                    injection.reason, amazon_order_id=amazon_order_id, original_zpl=original_zpl
                )

            transitioned = await self.order_store.set_label_bought(amazon_order_id, label.tracking_id, injection.zpl)
            if not transitioned:
                # Bought by another process between the read and this write
                raise LabelAlreadyPurchasedException(amazon_order_id)

        await self._save_shipping_defaults(order, weight, dimensions)

        logger.info(f"Label purchased for order {amazon_order_id} (tracking {label.tracking_id})")
        return LabelPurchaseResult(
            amazon_order_id=amazon_order_id,
            zpl=injection.zpl,
            tracking_id=label.tracking_id,
            shipment_id=label.shipment_id,
            shipping_service_id=service.ShippingServiceId,
            warnings=list(warnings),
            injection_warnings=list(injection.warnings),
        )

    async def _save_shipping_defaults(self, order: AmazonOrder, weight: Weight, dimensions: Dimensions) -> None:
        """Upsert defaults when the order has exactly one distinct sku. Failures only log."""
        skus = order.distinct_skus
        if len(skus) != 1:
            return

        try:
            await self.defaults_store.upsert(ShippingDefaults(sku=skus[0], weight=weight, dimensions=dimensions))
            logger.debug(f"Shipping defaults saved for sku {skus[0]}")
        except Exception as e:
            logger.warning(
                f"Could not save shipping defaults for sku {skus[0]}: {e}",
                extra={"amazon_order_id": order.amazon_order_id, "sku": skus[0]},
            )

    async def bulk_buy_labels(self, order_ids: List[str], weight: Weight, dimensions: Dimensions) -> BatchReport:
        """
        Buy labels for several orders with the same package.

        Ids are processed sequentially in input order. A failure is recorded
        for its id and never stops the batch.

        Raises:
            ValidationException: Invalid id list, weight or dimensions
        """
        ids = self.request_validator.validate_order_ids(order_ids)
        warnings = self.request_validator.validate_package(weight, dimensions)

        logger.info(f"Starting bulk label purchase for {len(ids)} orders")
        report = BatchReport()

        for amazon_order_id in ids:
            try:
                result = await self._purchase(amazon_order_id, weight, dimensions, warnings)
                report.add_success(
                    amazon_order_id, result.zpl, tracking_id=result.tracking_id, warnings=result.all_warnings
                )
            except Exception as e:
                log_error(e, {"operation": "labels.bulk_buy", "amazon_order_id": amazon_order_id})
                report.add_failure(amazon_order_id, str(e), error_code=error_code_of(e))

        logger.info(f"Bulk label purchase finished: {report.summary}")
        return report

    async def reprint_label(self, amazon_order_id: str) -> str:
        """
        Return the saved label of an order. No remote call is made.

        Raises:
            OrderNotFoundException: Order not in the local store
            LabelNotFoundException: Order has no saved label
        """
        amazon_order_id = self._require_order_id(amazon_order_id)
        order = await self._load_order(amazon_order_id)
        if not order.has_label:
            raise LabelNotFoundException(amazon_order_id)

        logger.debug(f"Reprinting saved label for order {amazon_order_id}")
        return order.label_zpl

    async def bulk_reprint_labels(self, order_ids: List[str]) -> BatchReport:
        """
        Return saved labels for several orders, combined in input order.

        Raises:
            ValidationException: Invalid id list
        """
        ids = self.request_validator.validate_order_ids(order_ids)
        report = BatchReport()

        for amazon_order_id in ids:
            try:
                zpl = await self.reprint_label(amazon_order_id)
                report.add_success(amazon_order_id, zpl)
            except Exception as e:
                log_error(
                    e, {"operation": "labels.bulk_reprint", "amazon_order_id": amazon_order_id}, level=logging.WARNING
                )
                report.add_failure(amazon_order_id, str(e), error_code=error_code_of(e))

        logger.info(f"Bulk reprint finished: {report.summary}")
        return report

    async def get_shipping_defaults(self, sku: str) -> Optional[ShippingDefaults]:
        """Saved weight/dimensions for a sku, used to pre-fill requests."""
        if not isinstance(sku, str) or not sku.strip():
            raise ValidationException(message="Sku is required", field="sku", invalid_value=sku)
        return await self.defaults_store.get(sku.strip())
