"""
Domain layer for Amazon Prime label automation.

This layer contains business entities and value objects: orders with
their status ratchet, shipping defaults per sku, and batch reports.
"""
