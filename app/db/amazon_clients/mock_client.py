"""
Fuente Amazon simulada para desarrollo y tests (USE_MOCK=true).

Replica la forma de Orders API y Merchant Fulfillment API con datos de
Italia. Cada instancia tiene su propio estado: los tests construyen una
fuente por caso y pueden programar fallas por operación.
"""

import base64
import gzip
import logging
from collections import defaultdict, deque
from copy import deepcopy
from datetime import datetime, timedelta, timezone
from typing import Any, Deque, Dict, List, Optional

from app.db.amazon_clients.converters import convert_order, convert_order_items
from app.db.amazon_clients.schemas import (
    AmazonOrderItemPayload,
    AmazonOrderPayload,
    CreateShipmentPayload,
    ShippingService,
)
from app.domain.models.order import AmazonOrder, OrderItem
from app.domain.value_objects.dimensions import Dimensions
from app.domain.value_objects.weight import Weight
from app.utils.retry_handler import RetryHandler

logger = logging.getLogger(__name__)


def default_mock_orders(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Órdenes de ejemplo en formato getOrders.

    MOCK-ORDER-3 no es Prime para probar el filtro.
    """
    now = now or datetime.now(timezone.utc)

    def ago(**delta) -> str:
        return (now - timedelta(**delta)).strftime("%Y-%m-%dT%H:%M:%SZ")

    return [
        {
            "AmazonOrderId": "MOCK-ORDER-3",
            "PurchaseDate": ago(days=2),
            "OrderStatus": "Unshipped",
            "FulfillmentChannel": "MFN",
            "IsPrime": False,
            "ShippingAddress": {
                "Name": "Alessandro Verdi",
                "AddressLine1": "Piazza del Plebiscito 1",
                "City": "Napoli",
                "StateOrRegion": "NA",
                "PostalCode": "80132",
                "CountryCode": "IT",
                "Phone": "+390812345678",
            },
        },
        {
            "AmazonOrderId": "MOCK-ORDER-4",
            "PurchaseDate": ago(hours=1),
            "OrderStatus": "Unshipped",
            "FulfillmentChannel": "MFN",
            "IsPrime": True,
            "ShippingAddress": {
                "Name": "Francesca Neri",
                "AddressLine1": "Via Indipendenza 8",
                "City": "Bologna",
                "StateOrRegion": "BO",
                "PostalCode": "40121",
                "CountryCode": "IT",
                "Phone": "+390512345678",
            },
        },
        {
            "AmazonOrderId": "MOCK-ORDER-5",
            "PurchaseDate": ago(days=5),
            "OrderStatus": "Unshipped",
            "FulfillmentChannel": "MFN",
            "IsPrime": True,
            "ShippingAddress": {
                "Name": "Lorenzo Esposito",
                "AddressLine1": "Calle Larga XXII Marzo 2099",
                "City": "Venezia",
                "StateOrRegion": "VE",
                "PostalCode": "30124",
                "CountryCode": "IT",
                "Phone": "+390412345678",
            },
        },
        {
            "AmazonOrderId": "MOCK-ORDER-6",
            "PurchaseDate": ago(seconds=0),
            "OrderStatus": "Unshipped",
            "FulfillmentChannel": "MFN",
            "IsPrime": True,
            "ShippingAddress": {
                "Name": "Sofia Ricci",
                "AddressLine1": "Via Etnea 200",
                "City": "Catania",
                "StateOrRegion": "CT",
                "PostalCode": "95124",
                "CountryCode": "IT",
                "Phone": "+390952345678",
            },
        },
        {
            "AmazonOrderId": "MOCK-ORDER-7",
            "PurchaseDate": ago(hours=2),
            "OrderStatus": "Unshipped",
            "FulfillmentChannel": "MFN",
            "IsPrime": True,
            "ShippingAddress": {
                "Name": "Matteo Romano",
                "AddressLine1": "Corso Porta Nuova 55",
                "City": "Verona",
                "StateOrRegion": "VR",
                "PostalCode": "37122",
                "CountryCode": "IT",
                "Phone": "+390452345678",
            },
        },
    ]


def default_mock_order_items() -> Dict[str, List[Dict[str, Any]]]:
    """Items de ejemplo en formato getOrderItems, por orden."""
    return {
        "MOCK-ORDER-3": [
            {"SellerSKU": "SKU-GHI", "QuantityOrdered": 1, "OrderItemId": "12345678901234"},
            {"SellerSKU": "SKU-JKL", "QuantityOrdered": 1, "OrderItemId": "12345678901235"},
            {"SellerSKU": "SKU-MNO", "QuantityOrdered": 1, "OrderItemId": "12345678901236"},
        ],
        "MOCK-ORDER-4": [
            {"SellerSKU": "SKU-PQR", "QuantityOrdered": 5, "OrderItemId": "12345678901237"},
        ],
        "MOCK-ORDER-5": [
            {"SellerSKU": "SKU-STU", "QuantityOrdered": 1, "OrderItemId": "12345678901238"},
        ],
        "MOCK-ORDER-6": [
            {"SellerSKU": "SKU-VWX", "QuantityOrdered": 2, "OrderItemId": "12345678901239"},
            {"SellerSKU": "SKU-YZA", "QuantityOrdered": 2, "OrderItemId": "12345678901240"},
        ],
        "MOCK-ORDER-7": [
            {"SellerSKU": "SKU-BCD", "QuantityOrdered": 1, "OrderItemId": "12345678901241"},
        ],
    }


def default_mock_services() -> List[Dict[str, Any]]:
    """Servicios elegibles simulados; el más barato es MOCK-STANDARD."""
    return [
        {
            "ShippingServiceName": "Mock Express",
            "CarrierName": "MOCK",
            "ShippingServiceId": "MOCK-EXPRESS",
            "ShippingServiceOfferId": "MOCK-OFFER-EXPRESS",
            "ShippingServiceCost": {"CurrencyCode": "EUR", "Amount": 9.9},
        },
        {
            "ShippingServiceName": "Mock Standard",
            "CarrierName": "MOCK",
            "ShippingServiceId": "MOCK-STANDARD",
            "ShippingServiceOfferId": "MOCK-OFFER-STANDARD",
            "ShippingServiceCost": {"CurrencyCode": "EUR", "Amount": 5.4},
        },
    ]


def render_mock_label(order: AmazonOrder) -> str:
    """Etiqueta ZPL simulada para una orden."""
    address = order.shipping_address or {}
    return "\n".join(
        [
            "^XA",
            "^CF0,30",
            "^FO50,50^FD Amazon Prime Label (MOCK)^FS",
            f"^FO50,100^FD Order: {order.amazon_order_id}^FS",
            f"^FO50,150^FD Ship To: {address.get('Name', order.customer_name)}^FS",
            f"^FO50,200^FD Address: {address.get('AddressLine1', '')}^FS",
            f"^FO50,250^FD City: {address.get('City', '')}^FS",
            f"^FO50,300^FD Country: {address.get('CountryCode', '')}^FS",
            "^XZ",
        ]
    )


def encode_label(zpl: str) -> str:
    """Comprime y codifica una etiqueta como lo hace createShipment."""
    return base64.b64encode(gzip.compress(zpl.encode("utf-8"))).decode("ascii")


class MockAmazonSource:
    """
    Fuente simulada que implementa las fuentes remotas de órdenes y etiquetas.

    Args:
        orders: Órdenes en formato getOrders (default: datos de Italia)
        order_items: Items por orden en formato getOrderItems
        services: Servicios elegibles en formato getEligibleShipmentServices
        retry_handler: Si se pasa, cada llamada pasa por el handler
        label_renderer: Función que genera el ZPL de una orden
    """

    def __init__(
        self,
        orders: Optional[List[Dict[str, Any]]] = None,
        order_items: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        services: Optional[List[Dict[str, Any]]] = None,
        retry_handler: Optional[RetryHandler] = None,
        label_renderer=render_mock_label,
    ):
        self.orders = deepcopy(orders) if orders is not None else default_mock_orders()
        self.order_items = deepcopy(order_items) if order_items is not None else default_mock_order_items()
        self.services = deepcopy(services) if services is not None else default_mock_services()
        self.retry_handler = retry_handler
        self.label_renderer = label_renderer

        # Respuesta de createShipment forzada por orden (para payloads mal formados)
        self.shipment_overrides: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self._failures: Dict[str, Deque[BaseException]] = defaultdict(deque)

    def fail_next(self, operation: str, *errors: BaseException) -> None:
        """
        Programa fallas para las próximas llamadas a una operación.

        Args:
            operation: getOrders, getOrderItems, getEligibleShipmentServices o createShipment
            errors: Excepciones a lanzar en orden, una por llamada
        """
        self._failures[operation].extend(errors)

    def call_count(self, operation: str) -> int:
        return self.calls.count(operation)

    async def _invoke(self, operation: str, context: str, produce):
        async def attempt():
            self.calls.append(operation)
            pending = self._failures.get(operation)
            if pending:
                raise pending.popleft()
            return produce()

        if self.retry_handler is None:
            return await attempt()
        return await self.retry_handler.execute(attempt, context=context)

    # Orders API

    async def fetch_unshipped_prime_orders(self) -> List[AmazonOrder]:
        """Órdenes Prime sin enviar con sus items."""
        payloads = await self._invoke(
            "getOrders",
            "getOrders",
            lambda: [AmazonOrderPayload.model_validate(order) for order in self.orders],
        )

        hydrated = []
        for order in payloads:
            if order.OrderStatus not in (None, "Unshipped") or not order.IsPrime:
                continue
            items = await self.fetch_order_items(order.AmazonOrderId)
            hydrated.append(convert_order(order, items))

        logger.info(f"Mock source returned {len(hydrated)} Prime orders ({len(payloads)} unshipped)")
        return hydrated

    async def fetch_order_items(self, amazon_order_id: str) -> List[OrderItem]:
        """Items de una orden."""
        raw_items = self.order_items.get(amazon_order_id, [])
        items = await self._invoke(
            "getOrderItems",
            f"getOrderItems {amazon_order_id}",
            lambda: [AmazonOrderItemPayload.model_validate(item) for item in raw_items],
        )
        return convert_order_items(items)

    # Merchant Fulfillment API

    async def get_eligible_services(
        self, order: AmazonOrder, weight: Weight, dimensions: Dimensions, ship_from: Dict[str, Any]
    ) -> List[ShippingService]:
        """Servicios elegibles simulados."""
        return await self._invoke(
            "getEligibleShipmentServices",
            f"getEligibleShipmentServices {order.amazon_order_id}",
            lambda: [ShippingService.model_validate(service) for service in self.services],
        )

    async def create_shipment(
        self,
        order: AmazonOrder,
        weight: Weight,
        dimensions: Dimensions,
        ship_from: Dict[str, Any],
        service: ShippingService,
    ) -> CreateShipmentPayload:
        """Compra simulada: etiqueta gzip+base64 y tracking MOCK-TRACKING-{id}."""

        def produce() -> CreateShipmentPayload:
            if order.amazon_order_id in self.shipment_overrides:
                return CreateShipmentPayload.model_validate(self.shipment_overrides[order.amazon_order_id])

            return CreateShipmentPayload.model_validate(
                {
                    "Shipment": {
                        "ShipmentId": f"MOCK-SHIPMENT-{order.amazon_order_id}",
                        "AmazonOrderId": order.amazon_order_id,
                        "TrackingId": f"MOCK-TRACKING-{order.amazon_order_id}",
                        "Label": {
                            "Dimensions": {"Length": 4, "Width": 6, "Unit": "inches"},
                            "FileContents": {
                                "Contents": encode_label(self.label_renderer(order)),
                                "FileType": "application/zpl",
                                "Checksum": "mock-checksum",
                            },
                            "LabelFormat": "ZPL203",
                        },
                    }
                }
            )

        return await self._invoke("createShipment", f"createShipment {order.amazon_order_id}", produce)

    async def initialize(self):
        """Sin recursos que abrir; mantiene la interfaz de los clientes reales."""

    async def close(self):
        """Sin recursos que cerrar."""
