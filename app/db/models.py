"""
Table metadata for the local order store.

Tables are created by ConnDB.initialize() when they do not exist.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, MetaData, String, Table, Text, func
from sqlalchemy.dialects.postgresql import JSONB

from app.domain.models.order import OrderStatus

metadata = MetaData()

# JSONB en PostgreSQL, JSON en SQLite
JSONType = JSON().with_variant(JSONB(), "postgresql")

orders_table = Table(
    "orders",
    metadata,
    Column("amazon_order_id", String(64), primary_key=True),
    Column("purchase_date", DateTime(timezone=True), nullable=True),
    Column("customer_name", String(255), nullable=True),
    Column("shipping_address", JSONType, nullable=True),
    Column("items", JSONType, nullable=True),
    Column("is_prime", Boolean, nullable=False, default=True),
    Column("status", String(32), nullable=False, default=OrderStatus.UNSHIPPED.value),
    Column("tracking_id", String(128), nullable=True),
    Column("label_zpl", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

shipping_defaults_table = Table(
    "product_shipping_defaults",
    metadata,
    Column("sku", String(128), primary_key=True),
    Column("weight_value", Float, nullable=False),
    Column("weight_unit", String(8), nullable=False),
    Column("length", Float, nullable=False),
    Column("width", Float, nullable=False),
    Column("height", Float, nullable=False),
    Column("dimension_unit", String(8), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
