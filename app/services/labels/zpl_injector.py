"""
SKU/QTY injection into Amazon ZPL labels.

Adds a bordered box with ``SKU: <sku>  QTY: <qty>`` right before the final
``^XZ`` so pickers can match the parcel to its contents. The injector never
returns a partially modified label: on any failure the result carries the
original document untouched and a reason.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from app.core.config import get_settings
from app.services.labels.zpl_validator import validate_zpl

logger = logging.getLogger(__name__)

# Geometría del bloque inyectado, en dots (203 dpi)
BOX_WIDTH = 700
BOX_HEIGHT = 60
BOX_BORDER = 3
FONT_SIZE = 30
TEXT_OFFSET_Y = 20

ELLIPSIS = "..."
UNKNOWN_SKU = "UNKNOWN"

# Prefijos de comando ZPL; en el texto del SKU abrirían comandos nuevos
_COMMAND_PREFIXES = ("^", "~")

Number = Union[int, float]


@dataclass
class InjectionResult:
    """
    Outcome of ZplInjector.inject.

    ``zpl`` is the modified label on success and the untouched original on
    failure.
    """

    ok: bool
    zpl: Any
    reason: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    sku: Optional[str] = None
    quantity: Optional[Number] = None
    x: Optional[int] = None
    y: Optional[int] = None


def sanitize_quantity(quantity: Any) -> Number:
    """
    Normalize a quantity for printing.

    Non-numeric, non-finite or non-positive values become 1. Integral
    floats become ints.
    """
    if isinstance(quantity, bool):
        return 1
    try:
        value = float(quantity)
    except (TypeError, ValueError, OverflowError):
        return 1

    if not math.isfinite(value) or value <= 0:
        return 1
    return int(value) if value.is_integer() else value


def format_quantity(quantity: Number) -> str:
    return str(quantity) if isinstance(quantity, int) else f"{quantity:g}"


def parse_coordinate(value: Any) -> Optional[int]:
    """
    Parse a coordinate override.

    Returns:
        int or None when the value is absent or unparseable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return int(round(number))


def build_injection_block(sku: str, quantity: Number, x: int, y: int) -> str:
    """The two-line ZPL block: bordered box plus SKU/QTY text."""
    return (
        f"^FO{x},{y}^GB{BOX_WIDTH},{BOX_HEIGHT},{BOX_BORDER}^FS\n"
        f"^FO{x},{y + TEXT_OFFSET_Y}^A0N,{FONT_SIZE},{FONT_SIZE}^FD SKU: {sku}  QTY: {format_quantity(quantity)}^FS\n"
    )


class ZplInjector:
    """
    Injects the SKU/QTY block into ZPL labels within geometric bounds.

    Example:
        ```python
        injector = ZplInjector()
        result = injector.inject(zpl, sku="SKU-PQR", quantity=5)
        if result.ok:
            save(result.zpl)
        ```
    """

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None, max_sku_length: Optional[int] = None):
        """
        Initialize the injector.

        Args:
            x: Default anchor x in dots (default: ZPL_INJECT_X)
            y: Default anchor y in dots (default: ZPL_INJECT_Y)
            max_sku_length: Max printed sku length (default: ZPL_SKU_MAX_LENGTH)
        """
        settings = get_settings()
        self.default_x = settings.ZPL_INJECT_X if x is None else x
        self.default_y = settings.ZPL_INJECT_Y if y is None else y
        self.max_sku_length = settings.ZPL_SKU_MAX_LENGTH if max_sku_length is None else max_sku_length

    def sanitize_sku(self, sku: Any, warnings: Optional[List[str]] = None) -> str:
        """
        Clean a sku for printing.

        Strips command prefixes, substitutes UNKNOWN for empty values and
        truncates long skus to ``max_sku_length`` ending in an ellipsis.
        """
        text = "" if sku is None else str(sku)
        for prefix in _COMMAND_PREFIXES:
            text = text.replace(prefix, "")
        text = text.strip()

        if not text:
            return UNKNOWN_SKU

        if len(text) > self.max_sku_length:
            truncated = text[: max(self.max_sku_length - len(ELLIPSIS), 0)] + ELLIPSIS
            message = f"SKU truncated from {len(text)} to {len(truncated)} characters: {truncated}"
            logger.warning(message, extra={"operation": "zpl.inject", "original_sku": text})
            if warnings is not None:
                warnings.append(message)
            return truncated

        return text

    def _fail(self, zpl: Any, reason: str, **fields) -> InjectionResult:
        logger.warning(f"ZPL injection rejected: {reason}", extra={"operation": "zpl.inject"})
        return InjectionResult(ok=False, zpl=zpl, reason=reason, **fields)

    def inject(
        self,
        zpl: Any,
        sku: Any,
        quantity: Any,
        x: Any = None,
        y: Any = None,
        dry_run: bool = False,
    ) -> InjectionResult:
        """
        Inject the SKU/QTY block.

        Args:
            zpl: Original label markup
            sku: Sku to print
            quantity: Quantity to print
            x: Anchor x override in dots
            y: Anchor y override in dots
            dry_run: Validate everything without modifying the label

        Returns:
            InjectionResult: modified label, or original plus reason
        """
        validation = validate_zpl(zpl)
        if not validation.ok:
            return self._fail(zpl, "; ".join(validation.errors))

        parsed_x = parse_coordinate(x)
        parsed_y = parse_coordinate(y)
        resolved_x = self.default_x if parsed_x is None else parsed_x
        resolved_y = self.default_y if parsed_y is None else parsed_y
        if resolved_x < 0 or resolved_y < 0:
            return self._fail(zpl, f"Injection coordinates must be non-negative (x={resolved_x}, y={resolved_y})")

        warnings: List[str] = []
        clean_sku = self.sanitize_sku(sku, warnings)
        clean_quantity = sanitize_quantity(quantity)
        fields = {"sku": clean_sku, "quantity": clean_quantity, "x": resolved_x, "y": resolved_y}

        if validation.print_width is not None and resolved_x + BOX_WIDTH > validation.print_width:
            return self._fail(
                zpl,
                f"Injected block exceeds print width: x={resolved_x} + {BOX_WIDTH} > ^PW{validation.print_width}",
                warnings=warnings,
                **fields,
            )
        if validation.label_length is not None and resolved_y + BOX_HEIGHT > validation.label_length:
            return self._fail(
                zpl,
                f"Injected block exceeds label length: y={resolved_y} + {BOX_HEIGHT} > ^LL{validation.label_length}",
                warnings=warnings,
                **fields,
            )
        if validation.print_width is None or validation.label_length is None:
            # TODO: decide a fallback geometry for labels without ^PW/^LL (203 dpi 4x6 is 812x1218 dots)
            logger.debug(
                "Label declares no ^PW/^LL; bounds check skipped",
                extra={"operation": "zpl.inject", "print_width": validation.print_width,
                       "label_length": validation.label_length},
            )

        if dry_run:
            return InjectionResult(ok=True, zpl=zpl, warnings=warnings, **fields)

        end_index = validation.end_index
        prefix = zpl[:end_index]
        separator = "" if not prefix or prefix.endswith("\n") else "\n"
        modified = prefix + separator + build_injection_block(clean_sku, clean_quantity, resolved_x, resolved_y) + zpl[end_index:]

        revalidation = validate_zpl(modified)
        if not revalidation.ok:
            return self._fail(
                zpl,
                f"Injected label failed validation: {'; '.join(revalidation.errors)}",
                warnings=warnings,
                **fields,
            )

        logger.debug(f"Injected SKU/QTY block ({clean_sku} x {format_quantity(clean_quantity)}) at {resolved_x},{resolved_y}")
        return InjectionResult(ok=True, zpl=modified, warnings=warnings, **fields)


def inject_sku_into_zpl(zpl: Any, sku: Any, quantity: Any, **kwargs) -> InjectionResult:
    """
    Convenience wrapper using the configured default injector.

    Args:
        zpl: Original label markup
        sku: Sku to print
        quantity: Quantity to print
        **kwargs: x, y and dry_run overrides

    Returns:
        InjectionResult
    """
    return ZplInjector().inject(zpl, sku, quantity, **kwargs)
