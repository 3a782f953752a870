"""
Package dimensions value object.
"""

import math
from dataclasses import dataclass

INCHES_PER_UNIT = {
    "in": 1.0,
    "cm": 1 / 2.54,
}

SP_API_LENGTH_UNITS = {
    "in": "inches",
    "cm": "centimeters",
}

# Divisores de peso volumétrico de los carriers
DIM_DIVISOR_INCHES = 139
DIM_DIVISOR_CM = 5000
KG_TO_LB = 2.20462262


@dataclass(frozen=True)
class Dimensions:
    """
    Immutable package dimensions.

    Attributes:
        length: Package length
        width: Package width
        height: Package height
        unit: in or cm
    """

    length: float
    width: float
    height: float
    unit: str = "in"

    def __post_init__(self) -> None:
        """Normalize unit casing."""
        if isinstance(self.unit, str):
            object.__setattr__(self, "unit", self.unit.strip().lower())

    @property
    def is_known_unit(self) -> bool:
        return self.unit in INCHES_PER_UNIT

    def sides(self) -> dict[str, float]:
        return {"length": self.length, "width": self.width, "height": self.height}

    def to_inches(self) -> dict[str, float]:
        """Convert every side to inches."""
        if not self.is_known_unit:
            raise ValueError(f"Unsupported dimension unit: {self.unit}")
        factor = INCHES_PER_UNIT[self.unit]
        return {name: value * factor for name, value in self.sides().items()}

    def dimensional_weight_pounds(self) -> float:
        """
        Billable volumetric weight in pounds.

        Inches: L x W x H / 139. Centimeters: L x W x H / 5000 gives kg,
        converted to pounds.
        """
        volume = self.length * self.width * self.height
        if self.unit == "cm":
            return volume / DIM_DIVISOR_CM * KG_TO_LB
        if self.unit == "in":
            return volume / DIM_DIVISOR_INCHES
        raise ValueError(f"Unsupported dimension unit: {self.unit}")

    def non_finite_or_non_positive(self) -> list[str]:
        """Names of sides that are not positive finite numbers."""
        invalid = []
        for name, value in self.sides().items():
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                invalid.append(name)
                continue
            try:
                finite = math.isfinite(value)
            except OverflowError:
                finite = False
            if not finite or value <= 0:
                invalid.append(name)
        return invalid

    def to_sp_api(self) -> dict:
        """PackageDimensions payload for Merchant Fulfillment requests."""
        return {
            "Length": self.length,
            "Width": self.width,
            "Height": self.height,
            "Unit": SP_API_LENGTH_UNITS[self.unit],
        }

    def to_dict(self) -> dict:
        return {**self.sides(), "unit": self.unit}
