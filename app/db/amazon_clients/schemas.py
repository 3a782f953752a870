"""
Modelos Pydantic para payloads de Amazon Selling Partner API.

Los nombres de campo replican el PascalCase de Orders API v0 y
Merchant Fulfillment API v0 para validar las respuestas tal cual llegan.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SPAPIModel(BaseModel):
    """Base común: ignora campos que Amazon agregue en el futuro."""

    model_config = ConfigDict(extra="ignore")


class SPAPIError(SPAPIModel):
    """Error individual en la lista ``errors`` de SP-API."""

    code: Optional[str] = None
    message: Optional[str] = None
    details: Optional[str] = None


class SPAPIErrorResponse(SPAPIModel):
    errors: List[SPAPIError] = Field(default_factory=list)

    @property
    def first_code(self) -> Optional[str]:
        return self.errors[0].code if self.errors else None

    @property
    def summary(self) -> str:
        return "; ".join(f"{e.code}: {e.message}" for e in self.errors) or "Unknown error"


# Orders API


class AmazonAddress(SPAPIModel):
    """Dirección de envío de una orden."""

    model_config = ConfigDict(extra="allow")

    Name: Optional[str] = None
    AddressLine1: Optional[str] = None
    AddressLine2: Optional[str] = None
    City: Optional[str] = None
    StateOrRegion: Optional[str] = None
    PostalCode: Optional[str] = None
    CountryCode: Optional[str] = None
    Phone: Optional[str] = None


class AmazonOrderPayload(SPAPIModel):
    """Orden tal como la devuelve getOrders."""

    AmazonOrderId: str
    PurchaseDate: Optional[str] = None
    OrderStatus: Optional[str] = None
    FulfillmentChannel: Optional[str] = None
    IsPrime: bool = False
    ShippingAddress: Optional[AmazonAddress] = None


class GetOrdersPayload(SPAPIModel):
    Orders: List[AmazonOrderPayload] = Field(default_factory=list)
    NextToken: Optional[str] = None


class AmazonOrderItemPayload(SPAPIModel):
    """Item tal como lo devuelve getOrderItems."""

    OrderItemId: Optional[str] = None
    SellerSKU: Optional[str] = None
    QuantityOrdered: int = 0

    @field_validator("QuantityOrdered", mode="before")
    @classmethod
    def validate_quantity(cls, v):
        """Amazon puede omitir la cantidad en items cancelados."""
        return v if v is not None else 0


class GetOrderItemsPayload(SPAPIModel):
    OrderItems: List[AmazonOrderItemPayload] = Field(default_factory=list)
    NextToken: Optional[str] = None


# Merchant Fulfillment API


class CurrencyAmount(SPAPIModel):
    CurrencyCode: Optional[str] = None
    Amount: Optional[float] = None


class ShippingService(SPAPIModel):
    """Servicio elegible devuelto por getEligibleShipmentServices."""

    ShippingServiceName: Optional[str] = None
    CarrierName: Optional[str] = None
    ShippingServiceId: str
    ShippingServiceOfferId: Optional[str] = None
    ShippingServiceCost: Optional[CurrencyAmount] = None

    @property
    def cost(self) -> float:
        """Costo del servicio; sin costo se considera infinito."""
        if self.ShippingServiceCost is None or self.ShippingServiceCost.Amount is None:
            return float("inf")
        return self.ShippingServiceCost.Amount


class EligibleServicesPayload(SPAPIModel):
    ShippingServiceList: List[ShippingService] = Field(default_factory=list)


class LabelFileContents(SPAPIModel):
    Contents: Optional[str] = None
    FileType: Optional[str] = None
    Checksum: Optional[str] = None


class ShipmentLabel(SPAPIModel):
    FileContents: Optional[LabelFileContents] = None
    LabelFormat: Optional[str] = None
    Dimensions: Optional[Dict[str, Any]] = None


class ShipmentDetails(SPAPIModel):
    ShipmentId: Optional[str] = None
    AmazonOrderId: Optional[str] = None
    TrackingId: Optional[str] = None
    Label: Optional[ShipmentLabel] = None


class CreateShipmentPayload(SPAPIModel):
    """Payload de createShipment; cada nivel puede faltar en respuestas mal formadas."""

    Shipment: Optional[ShipmentDetails] = None
