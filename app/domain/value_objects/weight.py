"""
Weight value object for package weights sent to Merchant Fulfillment.

Operators enter ounces, pounds, grams or kilograms. Carrier limits are
expressed in pounds and Merchant Fulfillment only takes ounces or grams,
so every weight knows how to convert itself.
"""

import math
from dataclasses import dataclass

POUNDS_PER_UNIT = {
    "oz": 1 / 16,
    "lb": 1.0,
    "g": 0.00220462262,
    "kg": 2.20462262,
}

# Merchant Fulfillment solo acepta onzas y gramos
SP_API_WEIGHT_CONVERSIONS = {
    "oz": ("oz", 1.0),
    "lb": ("oz", 16.0),
    "g": ("g", 1.0),
    "kg": ("g", 1000.0),
}


@dataclass(frozen=True)
class Weight:
    """
    Immutable package weight.

    Range checks (positive, 150 lb cap) belong to ShipmentRequestValidator;
    this object only normalizes the unit and converts.

    Attributes:
        value: Numeric weight
        unit: One of oz, lb, g, kg

    Example:
        >>> Weight(value=200, unit="oz").to_pounds()
        12.5
    """

    value: float
    unit: str = "oz"

    def __post_init__(self) -> None:
        """Normalize unit casing."""
        if isinstance(self.unit, str):
            object.__setattr__(self, "unit", self.unit.strip().lower())

    @property
    def is_known_unit(self) -> bool:
        return self.unit in POUNDS_PER_UNIT

    @property
    def is_positive_finite(self) -> bool:
        if not isinstance(self.value, (int, float)) or isinstance(self.value, bool):
            return False
        try:
            return math.isfinite(self.value) and self.value > 0
        except OverflowError:
            # int demasiado grande para float
            return False

    def to_pounds(self) -> float:
        """Convert weight to pounds."""
        if not self.is_known_unit:
            raise ValueError(f"Unsupported weight unit: {self.unit}")
        return self.value * POUNDS_PER_UNIT[self.unit]

    def to_sp_api(self) -> dict:
        """Weight payload for Merchant Fulfillment requests."""
        unit, factor = SP_API_WEIGHT_CONVERSIONS[self.unit]
        return {"Value": round(self.value * factor, 3), "Unit": unit}

    def to_dict(self) -> dict:
        return {"value": self.value, "unit": self.unit}

    def __str__(self) -> str:
        return f"{self.value:g} {self.unit}"
