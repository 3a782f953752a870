"""
Value objects for the domain layer.

Value objects are immutable objects that represent concepts
with no conceptual identity, only defined by their attributes.
"""

from .dimensions import Dimensions
from .weight import Weight

__all__ = ["Weight", "Dimensions"]
