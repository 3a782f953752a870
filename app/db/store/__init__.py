"""
Repositories for the local order store.
"""

from .order_repository import OrderRepository
from .shipping_defaults_repository import ShippingDefaultsRepository

__all__ = ["OrderRepository", "ShippingDefaultsRepository"]
