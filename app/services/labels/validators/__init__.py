"""
Validator services for label purchase requests.
"""

from .shipment_request_validator import ShipmentRequestValidator

__all__ = ["ShipmentRequestValidator"]
