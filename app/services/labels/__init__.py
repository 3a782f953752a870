"""
Label services: ZPL validation, SKU/QTY injection and label purchase.
"""

from .orchestrator import LabelPurchaseOrchestrator, LabelPurchaseResult
from .zpl_injector import InjectionResult, ZplInjector, inject_sku_into_zpl
from .zpl_validator import ZplValidationResult, validate_zpl

__all__ = [
    "LabelPurchaseOrchestrator",
    "LabelPurchaseResult",
    "ZplInjector",
    "InjectionResult",
    "inject_sku_into_zpl",
    "ZplValidationResult",
    "validate_zpl",
]
