"""
Domain models for business entities.

These models represent core business concepts and contain
business logic and invariants.
"""

from .batch_report import BatchEntry, BatchReport
from .order import AmazonOrder, OrderItem, OrderStatus
from .shipping_defaults import ShippingDefaults

__all__ = ["AmazonOrder", "OrderItem", "OrderStatus", "ShippingDefaults", "BatchReport", "BatchEntry"]
