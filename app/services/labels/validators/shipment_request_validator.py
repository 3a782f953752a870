"""
ShipmentRequestValidator: validates weight, dimensions and order id batches
before any label purchase reaches Amazon.

Hard limits raise ValidationException. Soft limits (dimensional weight) come
back as warnings so the operator can still buy the label.
"""

import logging
from collections.abc import Iterable
from typing import Any, List, Optional

from app.core.config import get_settings
from app.domain.value_objects.dimensions import INCHES_PER_UNIT, Dimensions
from app.domain.value_objects.weight import POUNDS_PER_UNIT, Weight
from app.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

MAX_WEIGHT_POUNDS = 150.0
MIN_DIMENSION_INCHES = 0.1
MAX_DIMENSION_INCHES = 108.0
MAX_DIMENSIONAL_WEIGHT_POUNDS = 150.0


class ShipmentRequestValidator:
    """
    Validates purchase requests for single and bulk label operations.

    Responsibilities:
    - Weight: positive finite value, known unit, 150 lb cap
    - Dimensions: positive finite sides, in or cm, [0.1, 108] inches per side
    - Dimensional weight over 150 lb: warning only
    - Bulk: 1..BULK_MAX_ORDERS non-empty order ids
    """

    def __init__(self, max_bulk_orders: Optional[int] = None):
        """
        Args:
            max_bulk_orders: Max ids per bulk request (default: BULK_MAX_ORDERS)
        """
        self.max_bulk_orders = get_settings().BULK_MAX_ORDERS if max_bulk_orders is None else max_bulk_orders

    def validate_weight(self, weight: Weight) -> None:
        """
        Raises:
            ValidationException: If the weight is invalid or exceeds 150 lb
        """
        if not isinstance(weight, Weight):
            raise ValidationException(message="Weight is required", field="weight", invalid_value=weight)

        if not weight.is_positive_finite:
            raise ValidationException(
                message="Weight value must be a positive number",
                field="weight.value",
                invalid_value=weight.value,
            )

        if not weight.is_known_unit:
            raise ValidationException(
                message=f"Unsupported weight unit '{weight.unit}'",
                field="weight.unit",
                invalid_value=weight.unit,
                expected_format=" | ".join(POUNDS_PER_UNIT),
            )

        pounds = weight.to_pounds()
        if pounds > MAX_WEIGHT_POUNDS:
            raise ValidationException(
                message=f"Weight exceeds limit: {pounds:.2f} lb > {MAX_WEIGHT_POUNDS:g} lb",
                field="weight",
                invalid_value=str(weight),
            )

    def validate_dimensions(self, dimensions: Dimensions) -> List[str]:
        """
        Validate package dimensions.

        Returns:
            List[str]: Non-fatal warnings

        Raises:
            ValidationException: If any side is invalid or out of range
        """
        if not isinstance(dimensions, Dimensions):
            raise ValidationException(message="Dimensions are required", field="dimensions", invalid_value=dimensions)

        invalid_sides = dimensions.non_finite_or_non_positive()
        if invalid_sides:
            side = invalid_sides[0]
            raise ValidationException(
                message=f"Dimension '{side}' must be a positive number",
                field=f"dimensions.{side}",
                invalid_value=getattr(dimensions, side),
            )

        if not dimensions.is_known_unit:
            raise ValidationException(
                message=f"Unsupported dimension unit '{dimensions.unit}'",
                field="dimensions.unit",
                invalid_value=dimensions.unit,
                expected_format=" | ".join(INCHES_PER_UNIT),
            )

        for side, inches in dimensions.to_inches().items():
            if not MIN_DIMENSION_INCHES <= inches <= MAX_DIMENSION_INCHES:
                raise ValidationException(
                    message=(
                        f"Dimension '{side}' out of range: {inches:.2f} in "
                        f"(allowed {MIN_DIMENSION_INCHES:g}-{MAX_DIMENSION_INCHES:g} in)"
                    ),
                    field=f"dimensions.{side}",
                    invalid_value=getattr(dimensions, side),
                )

        warnings = []
        dimensional_weight = dimensions.dimensional_weight_pounds()
        if dimensional_weight > MAX_DIMENSIONAL_WEIGHT_POUNDS:
            message = (
                f"Dimensional weight {dimensional_weight:.2f} lb exceeds "
                f"{MAX_DIMENSIONAL_WEIGHT_POUNDS:g} lb; carriers may reject or surcharge"
            )
            logger.warning(message)
            warnings.append(message)
        return warnings

    def validate_package(self, weight: Weight, dimensions: Dimensions) -> List[str]:
        """
        Validate weight and dimensions together.

        Returns:
            List[str]: Non-fatal warnings
        """
        self.validate_weight(weight)
        return self.validate_dimensions(dimensions)

    def validate_order_ids(self, order_ids: Any) -> List[str]:
        """
        Validate a bulk id list.

        Returns:
            List[str]: Ids stripped of surrounding whitespace, input order kept

        Raises:
            ValidationException: If the list is empty, too long or has blank ids
        """
        if isinstance(order_ids, str) or not isinstance(order_ids, Iterable):
            raise ValidationException(
                message="Order ids must be a list", field="order_ids", invalid_value=order_ids
            )

        ids = list(order_ids)
        if not 1 <= len(ids) <= self.max_bulk_orders:
            raise ValidationException(
                message=f"Between 1 and {self.max_bulk_orders} order ids are required (got {len(ids)})",
                field="order_ids",
                invalid_value=len(ids),
            )

        cleaned = []
        for position, order_id in enumerate(ids):
            if not isinstance(order_id, str) or not order_id.strip():
                raise ValidationException(
                    message=f"Order id at position {position} is empty",
                    field=f"order_ids[{position}]",
                    invalid_value=order_id,
                )
            cleaned.append(order_id.strip())
        return cleaned
