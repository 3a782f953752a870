# app/db/connection.py
"""
Clase ConnDB para gestión exclusiva de conexiones a la base de datos local.

Esta clase maneja únicamente la conexión, configuración del pool,
creación del esquema y ciclo de vida de las conexiones a la base
de órdenes (PostgreSQL vía asyncpg o SQLite vía aiosqlite).
"""

import logging
import time
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.db.models import metadata
from app.utils.error_handler import DatabaseException

logger = logging.getLogger(__name__)


class ConnDB:
    """
    Clase para gestión exclusiva de conexiones a la base de datos.

    Cada instancia es independiente; el contenedor de servicios crea una
    por proceso y los tests una por caso.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        """
        Inicializa la clase ConnDB.

        Args:
            database_url: URL SQLAlchemy async (default: DATABASE_URL)
            echo: Log de queries SQL (default: DATABASE_ECHO)
        """
        settings = get_settings()
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[sessionmaker] = None
        self.connection_string = database_url or settings.DATABASE_URL
        self.echo = settings.DATABASE_ECHO if echo is None else echo
        self._connection_tested = False
        logger.debug("ConnDB instance created")

    @property
    def dialect_name(self) -> str:
        """Nombre del dialecto (postgresql, sqlite)."""
        return make_url(self.connection_string).get_backend_name()

    def _engine_options(self) -> dict:
        """Opciones del engine según el dialecto."""
        settings = get_settings()
        url = make_url(self.connection_string)
        options = {"echo": self.echo, "future": True}

        if url.get_backend_name() == "sqlite":
            # Una base en memoria solo existe dentro de una conexión
            if url.database in (None, "", ":memory:"):
                options["poolclass"] = StaticPool
            return options

        options.update(
            {
                "pool_size": settings.DATABASE_POOL_SIZE,
                "max_overflow": 10,
                "pool_pre_ping": True,  # Verificar conexiones antes de usar
                "pool_recycle": 3600,  # Reciclar conexiones cada hora
                "pool_timeout": 30,
            }
        )
        if url.get_backend_name() == "postgresql":
            options["connect_args"] = {"server_settings": {"application_name": settings.APP_NAME}}
        return options

    async def initialize(self, create_schema: bool = True):
        """
        Inicializa el engine de base de datos y el pool de conexiones.

        Args:
            create_schema: Crear las tablas si no existen

        Raises:
            DatabaseException: Si falla la inicialización
        """
        try:
            if self.engine is not None:
                logger.info("Database connection already initialized")
                return

            logger.info(f"Initializing database connection ({self.dialect_name})...")

            self.engine = create_async_engine(self.connection_string, **self._engine_options())

            # Crear factory de sesiones
            self.session_factory = sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

            if create_schema:
                await self.create_schema()

            # Verificar conexión inicial
            await self._test_connection()

            logger.info("Database connection initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            await self._cleanup_failed_initialization()
            raise DatabaseException(
                message=f"Failed to initialize database connection: {str(e)}",
                operation="initialization",
            ) from e

    async def create_schema(self):
        """Crea las tablas orders y product_shipping_defaults si no existen."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.debug("Database schema verified")

    async def _test_connection(self):
        """
        Prueba la conexión a la base de datos.

        Raises:
            DatabaseException: Si la prueba de conexión falla
        """
        async with self.session_factory() as session:
            result = await session.execute(text("SELECT 1 AS test_connection"))
            if result.scalar() != 1:
                raise DatabaseException(message="Connection test returned unexpected value", operation="test")

        self._connection_tested = True

    async def _cleanup_failed_initialization(self):
        """Limpia recursos en caso de fallo de inicialización."""
        try:
            if self.engine:
                await self.engine.dispose()
        except Exception as e:
            logger.error(f"Error during cleanup of failed initialization: {e}")
        finally:
            self.engine = None
            self.session_factory = None
            self._connection_tested = False

    def get_session(self) -> AsyncSession:
        """
        Obtiene una nueva sesión de base de datos.

        Returns:
            AsyncSession: Sesión asíncrona de SQLAlchemy

        Raises:
            DatabaseException: Si no hay conexión inicializada
        """
        if not self.is_initialized():
            raise DatabaseException(
                message="Database connection not initialized. Call initialize() first.",
                operation="session_creation",
            )

        return self.session_factory()

    def is_initialized(self) -> bool:
        """
        Verifica si la conexión está inicializada.

        Returns:
            bool: True si está inicializada y probada
        """
        return self.engine is not None and self.session_factory is not None and self._connection_tested

    async def test_connection(self) -> bool:
        """
        Prueba la conexión a la base de datos de forma no destructiva.

        Returns:
            bool: True si la conexión funciona correctamente
        """
        if not self.is_initialized():
            return False

        try:
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False

    async def close(self):
        """
        Cierra la conexión y limpia todos los recursos.
        """
        try:
            if self.engine:
                await self.engine.dispose()
                logger.info("Database engine disposed")
        except Exception as e:
            logger.error(f"Error closing database connection: {e}")
            raise DatabaseException(
                message=f"Error closing database connection: {str(e)}",
                operation="close",
            ) from e
        finally:
            self.engine = None
            self.session_factory = None
            self._connection_tested = False

    async def health_check(self) -> dict:
        """
        Realiza un health check completo de la conexión.

        Returns:
            dict: Estado de salud de la conexión
        """
        health_info = {
            "connection_initialized": self.is_initialized(),
            "dialect": self.dialect_name,
            "test_passed": False,
            "response_time_ms": None,
        }

        start_time = time.time()
        health_info["test_passed"] = await self.test_connection()
        health_info["response_time_ms"] = round((time.time() - start_time) * 1000, 2)

        return health_info

    def __repr__(self) -> str:
        """Representación detallada de la conexión."""
        return (
            f"ConnDB(dialect={self.dialect_name}, initialized={self.is_initialized()}, "
            f"engine={self.engine is not None})"
        )
