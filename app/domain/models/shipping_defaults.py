"""
Shipping defaults per sku.

Saved after a purchase for single-sku orders and used to pre-fill the
weight and dimensions of future requests for the same sku.
"""

from dataclasses import dataclass
from typing import Any

from app.domain.value_objects.dimensions import Dimensions
from app.domain.value_objects.weight import Weight


@dataclass(frozen=True)
class ShippingDefaults:
    sku: str
    weight: Weight
    dimensions: Dimensions

    def to_dict(self) -> dict[str, Any]:
        """Flat row used by the defaults table."""
        return {
            "sku": self.sku,
            "weight_value": self.weight.value,
            "weight_unit": self.weight.unit,
            "length": self.dimensions.length,
            "width": self.dimensions.width,
            "height": self.dimensions.height,
            "dimension_unit": self.dimensions.unit,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingDefaults":
        return cls(
            sku=data["sku"],
            weight=Weight(value=float(data["weight_value"]), unit=data["weight_unit"]),
            dimensions=Dimensions(
                length=float(data["length"]),
                width=float(data["width"]),
                height=float(data["height"]),
                unit=data["dimension_unit"],
            ),
        )
