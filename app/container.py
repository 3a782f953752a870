"""
Contenedor de servicios de la aplicación.

Arma el grafo completo en orden: configuración, conexión a la base,
repositorios, fuentes de Amazon (reales o simuladas según USE_MOCK) y
servicios. El cierre libera recursos en orden inverso.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from app.core.config import Settings, get_settings
from app.db.amazon_clients import AmazonMerchantFulfillmentClient, AmazonOrdersClient, MockAmazonSource
from app.db.connection import ConnDB
from app.db.store import OrderRepository, ShippingDefaultsRepository
from app.services.labels import LabelPurchaseOrchestrator, ZplInjector
from app.services.labels.validators import ShipmentRequestValidator
from app.services.orders import IRemoteLabelSource, IRemoteOrderSource, OrderSynchronizer
from app.utils.order_lock import OrderLockRegistry
from app.utils.retry_handler import RetryHandler, create_amazon_retry_handler

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Servicios listos para usar."""

    settings: Settings
    conn_db: ConnDB
    order_repository: OrderRepository
    defaults_repository: ShippingDefaultsRepository
    retry_handler: RetryHandler
    order_source: IRemoteOrderSource
    label_source: IRemoteLabelSource
    synchronizer: OrderSynchronizer
    orchestrator: LabelPurchaseOrchestrator


@asynccontextmanager
async def build_services(
    settings: Optional[Settings] = None,
    conn_db: Optional[ConnDB] = None,
    order_source: Optional[IRemoteOrderSource] = None,
    label_source: Optional[IRemoteLabelSource] = None,
    retry_handler: Optional[RetryHandler] = None,
) -> AsyncIterator[ServiceContainer]:
    """
    Construye e inicializa todos los servicios.

    Args:
        settings: Configuración (default: global)
        conn_db: Conexión ya creada (default: DATABASE_URL)
        order_source: Fuente de órdenes (default: según USE_MOCK)
        label_source: Fuente de etiquetas (default: según USE_MOCK)
        retry_handler: Handler de reintentos compartido

    Yields:
        ServiceContainer: Servicios inicializados
    """
    settings = settings or get_settings()
    conn_db = conn_db or ConnDB()
    retry_handler = retry_handler or create_amazon_retry_handler()

    # Recursos a cerrar al salir, en orden de apertura
    opened = []

    try:
        await conn_db.initialize()

        order_repository = OrderRepository(conn_db)
        defaults_repository = ShippingDefaultsRepository(conn_db)
        await order_repository.initialize()
        await defaults_repository.initialize()

        if order_source is None or label_source is None:
            if settings.USE_MOCK:
                logger.info("USE_MOCK activo: usando fuente Amazon simulada")
                mock_source = MockAmazonSource(retry_handler=retry_handler)
                order_source = order_source or mock_source
                label_source = label_source or mock_source
            else:
                if order_source is None:
                    order_source = AmazonOrdersClient(settings=settings, retry_handler=retry_handler)
                if label_source is None:
                    label_source = AmazonMerchantFulfillmentClient(settings=settings, retry_handler=retry_handler)

        sources = [order_source] if order_source is label_source else [order_source, label_source]
        for source in sources:
            await source.initialize()
            opened.append(source)

        synchronizer = OrderSynchronizer(order_source, order_repository, retry_handler=retry_handler)
        orchestrator = LabelPurchaseOrchestrator(
            label_source=label_source,
            order_store=order_repository,
            defaults_store=defaults_repository,
            injector=ZplInjector(),
            request_validator=ShipmentRequestValidator(),
            lock_registry=OrderLockRegistry(),
            ship_from=settings.ship_from_address,
        )

        logger.debug("Contenedor de servicios inicializado")
        yield ServiceContainer(
            settings=settings,
            conn_db=conn_db,
            order_repository=order_repository,
            defaults_repository=defaults_repository,
            retry_handler=retry_handler,
            order_source=order_source,
            label_source=label_source,
            synchronizer=synchronizer,
            orchestrator=orchestrator,
        )

    finally:
        for source in reversed(opened):
            try:
                await source.close()
            except Exception as e:
                logger.error(f"Error cerrando fuente Amazon: {e}")
        await conn_db.close()
