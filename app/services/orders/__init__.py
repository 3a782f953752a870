"""
Order services package for Amazon order synchronization.

This package contains the service protocols and the synchronizer that
reconciles remote Prime orders into the local store.
"""

from .interfaces import IOrderStore, IRemoteLabelSource, IRemoteOrderSource, IShippingDefaultsStore
from .order_synchronizer import OrderSynchronizer

__all__ = [
    "OrderSynchronizer",
    "IRemoteOrderSource",
    "IRemoteLabelSource",
    "IOrderStore",
    "IShippingDefaultsStore",
]
