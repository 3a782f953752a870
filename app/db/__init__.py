"""
Módulo de acceso a datos para Prime Label Automation.

Este módulo proporciona acceso a la base de órdenes local y a
Amazon SP-API con separación clara de responsabilidades:

- ConnDB: Gestión exclusiva de conexiones
- store: Repositorios de órdenes y defaults de envío
- amazon_clients: Clientes de Orders API y Merchant Fulfillment API
"""

from app.db.connection import ConnDB

__all__ = ["ConnDB"]
