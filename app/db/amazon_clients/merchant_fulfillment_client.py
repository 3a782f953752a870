"""
Cliente de Merchant Fulfillment API v0.

Cotiza los servicios de envío elegibles y compra la etiqueta (createShipment)
en formato ZPL203.
"""

import logging
from typing import Any, Dict, List

from app.db.amazon_clients.base_client import BaseAmazonSPClient
from app.db.amazon_clients.schemas import CreateShipmentPayload, EligibleServicesPayload, ShippingService
from app.domain.models.order import AmazonOrder
from app.domain.value_objects.dimensions import Dimensions
from app.domain.value_objects.weight import Weight
from app.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

LABEL_FORMAT = "ZPL203"
DELIVERY_EXPERIENCE = "DeliveryConfirmationWithoutSignature"


def build_shipment_request_details(
    order: AmazonOrder, weight: Weight, dimensions: Dimensions, ship_from: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Construye ShipmentRequestDetails para una orden.

    Args:
        order: Orden local con sus items
        weight: Peso del paquete
        dimensions: Dimensiones del paquete
        ship_from: Dirección de origen (formato SP-API)

    Returns:
        Dict: ShipmentRequestDetails

    Raises:
        ValidationException: Si ningún item tiene OrderItemId
    """
    item_list = [
        {"OrderItemId": item.order_item_id, "Quantity": item.quantity}
        for item in order.items
        if item.order_item_id and item.quantity > 0
    ]
    if not item_list:
        raise ValidationException(
            message="Order has no Amazon OrderItemId; sync orders again before buying a label.",
            field="items",
            invalid_value=order.amazon_order_id,
        )

    return {
        "AmazonOrderId": order.amazon_order_id,
        "ItemList": item_list,
        "ShipFromAddress": ship_from,
        "PackageDimensions": dimensions.to_sp_api(),
        "Weight": weight.to_sp_api(),
        "ShippingServiceOptions": {
            "DeliveryExperience": DELIVERY_EXPERIENCE,
            "CarrierWillPickUp": False,
            "LabelFormat": LABEL_FORMAT,
        },
    }


class AmazonMerchantFulfillmentClient(BaseAmazonSPClient):
    """
    Client for Merchant Fulfillment API operations.
    """

    ELIGIBLE_SERVICES_PATH = "/mfn/v0/eligibleShippingServices"
    SHIPMENTS_PATH = "/mfn/v0/shipments"

    async def get_eligible_services(
        self, order: AmazonOrder, weight: Weight, dimensions: Dimensions, ship_from: Dict[str, Any]
    ) -> List[ShippingService]:
        """
        Get the shipping services Amazon offers for this package.

        Returns:
            List[ShippingService]: Eligible services (may be empty)
        """
        body = {"ShipmentRequestDetails": build_shipment_request_details(order, weight, dimensions, ship_from)}

        data = await self._call(
            lambda: self._request(
                "POST", self.ELIGIBLE_SERVICES_PATH, operation="getEligibleShipmentServices", json=body
            ),
            context=f"getEligibleShipmentServices {order.amazon_order_id}",
        )
        return self._parse(EligibleServicesPayload, data, "getEligibleShipmentServices").ShippingServiceList

    async def create_shipment(
        self,
        order: AmazonOrder,
        weight: Weight,
        dimensions: Dimensions,
        ship_from: Dict[str, Any],
        service: ShippingService,
    ) -> CreateShipmentPayload:
        """
        Buy the label for the selected shipping service.

        Returns:
            CreateShipmentPayload: Raw shipment payload; presence of label data
            is checked by the caller
        """
        body: Dict[str, Any] = {
            "ShipmentRequestDetails": build_shipment_request_details(order, weight, dimensions, ship_from),
            "ShippingServiceId": service.ShippingServiceId,
        }
        if service.ShippingServiceOfferId:
            body["ShippingServiceOfferId"] = service.ShippingServiceOfferId

        data = await self._call(
            lambda: self._request("POST", self.SHIPMENTS_PATH, operation="createShipment", json=body),
            context=f"createShipment {order.amazon_order_id}",
        )
        return self._parse(CreateShipmentPayload, data, "createShipment")
