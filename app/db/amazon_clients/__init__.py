"""
Clientes de Amazon Selling Partner API.

- AmazonOrdersClient: Orders API (órdenes MFN Prime sin enviar)
- AmazonMerchantFulfillmentClient: Merchant Fulfillment API (compra de etiquetas)
- MockAmazonSource: fuente simulada para USE_MOCK y tests
"""

from .base_client import BaseAmazonSPClient
from .merchant_fulfillment_client import AmazonMerchantFulfillmentClient
from .mock_client import MockAmazonSource
from .orders_client import AmazonOrdersClient

__all__ = [
    "BaseAmazonSPClient",
    "AmazonOrdersClient",
    "AmazonMerchantFulfillmentClient",
    "MockAmazonSource",
]
