"""
Base Repository for local store operations.

This module provides an abstract base class for the order store
repositories, implementing common functionality like connection
management, session handling, error handling, and table access
verification.
"""

import functools
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Callable, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.connection import ConnDB
from app.utils.error_handler import AppException, DatabaseException

logger = logging.getLogger(__name__)


def log_operation(operation_name: str = None) -> Callable:
    """
    Decorator for logging and wrapping repository operations.

    Unexpected driver errors are converted into DatabaseException;
    application exceptions pass through untouched.

    Args:
        operation_name: Optional custom name for the operation

    Returns:
        Decorated function with logging
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            op_name = operation_name or f"{self.__class__.__name__}.{func.__name__}"
            logger.debug(f"Starting operation: {op_name}")

            try:
                result = await func(self, *args, **kwargs)
                logger.debug(f"Operation successful: {op_name}")
                return result
            except AppException:
                raise
            except Exception as e:
                logger.error(f"Operation failed: {op_name} - {e}")
                raise DatabaseException(message=f"{op_name} failed: {str(e)}", operation=op_name) from e

        return wrapper

    return decorator


class BaseRepository(ABC):
    """
    Abstract base repository for the local order store.

    This class provides common functionality for all repository classes:
    - Connection management
    - Session handling with context managers
    - Table access verification
    """

    def __init__(self, conn_db: ConnDB):
        """
        Initialize the base repository.

        Args:
            conn_db: Database connection
        """
        self.conn_db: ConnDB = conn_db
        self._initialized: bool = False
        self._repository_name: str = self.__class__.__name__

    @log_operation("repository_initialization")
    async def initialize(self) -> None:
        """
        Initialize the repository ensuring database connection is available.

        Raises:
            DatabaseException: If initialization fails
        """
        if not self.conn_db.is_initialized():
            await self.conn_db.initialize()

        await self._verify_table_access()

        self._initialized = True
        logger.info(f"{self._repository_name} initialized successfully")

    @abstractmethod
    async def _verify_table_access(self) -> None:
        """
        Verify access to the tables required by this repository.

        Raises:
            DatabaseException: If table access verification fails
        """

    def is_initialized(self) -> bool:
        """
        Check if the repository is initialized and ready for operations.

        Returns:
            bool: True if repository is initialized
        """
        return self._initialized and self.conn_db.is_initialized()

    def get_session(self) -> AsyncContextManager[AsyncSession]:
        """
        Get a database session from the connection pool.

        Returns:
            AsyncContextManager[AsyncSession]: Database session context manager

        Raises:
            DatabaseException: If repository is not initialized
        """
        if not self.is_initialized():
            raise DatabaseException(
                message=f"{self._repository_name} not initialized",
                operation="session_acquisition",
            )

        return self.conn_db.get_session()

    async def _count_rows(self, table_name: str) -> int:
        async with self.conn_db.get_session() as session:
            result = await session.execute(text(f"SELECT COUNT(*) FROM {table_name}"))
            return result.scalar()

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform a health check on the repository.

        Returns:
            Dict containing health status information
        """
        if not self.is_initialized():
            return {
                "status": "unhealthy",
                "repository": self._repository_name,
                "initialized": False,
                "error": "Repository not initialized",
            }

        try:
            await self._verify_table_access()
        except DatabaseException as e:
            return {
                "status": "unhealthy",
                "repository": self._repository_name,
                "initialized": self._initialized,
                "error": str(e),
            }

        return {"status": "healthy", "repository": self._repository_name, "initialized": True}

    def __repr__(self) -> str:
        """String representation of the repository."""
        return f"<{self._repository_name}(initialized={self._initialized})>"
