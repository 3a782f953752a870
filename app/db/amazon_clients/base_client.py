"""
Base Amazon Selling Partner API client with common functionality.

This module provides the foundation for the SP-API clients: HTTP session
management, Login with Amazon (LWA) token exchange, request execution and
translation of HTTP and network failures into the application's remote
error taxonomy. Every call goes through the shared RetryHandler.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

import aiohttp
from aiohttp import ClientTimeout
from pydantic import BaseModel, ValidationError

from app.core.config import Settings, get_settings
from app.db.amazon_clients.schemas import SPAPIErrorResponse
from app.utils.error_handler import (
    AmazonAPIException,
    AppException,
    ErrorCode,
    PermanentRemoteException,
    TransientRemoteException,
)
from app.utils.retry_handler import (
    RemoteErrorInfo,
    RetryHandler,
    classify_remote_error,
    create_amazon_retry_handler,
    normalize_remote_error,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Margen para renovar el access token antes de que expire
TOKEN_REFRESH_MARGIN_SECONDS = 60


def build_remote_exception(
    info: RemoteErrorInfo, operation: str, message: Optional[str] = None
) -> AmazonAPIException:
    """
    Construye la excepción tipada para un error remoto normalizado.

    Args:
        info: Error normalizado
        operation: Operación de SP-API
        message: Mensaje a usar en lugar de info.message

    Returns:
        AmazonAPIException: Transient o Permanent según la clasificación
    """
    exception_class = TransientRemoteException if classify_remote_error(info) else PermanentRemoteException
    error_code = ErrorCode.RATE_LIMIT_EXCEEDED if info.status_code == 429 else None

    kwargs: Dict[str, Any] = {
        "api_response_code": info.status_code,
        "api_error_code": info.error_code,
        "operation": operation,
    }
    if error_code is not None:
        kwargs["error_code"] = error_code

    return exception_class(message or info.message, **kwargs)


class BaseAmazonSPClient:
    """
    Base client for Amazon SP-API operations.

    Provides connection management, LWA authentication, error translation
    and retrying execution that all specialized clients inherit.
    """

    def __init__(self, settings: Optional[Settings] = None, retry_handler: Optional[RetryHandler] = None):
        """
        Initialize the base SP-API client.

        Args:
            settings: Application settings (default: global settings)
            retry_handler: Retry executor shared by all calls
        """
        self.settings = settings or get_settings()
        self.endpoint = self.settings.sp_api_endpoint
        self.marketplace_id = self.settings.MARKETPLACE_ID
        self.retry_handler = retry_handler or create_amazon_retry_handler()

        self.session: Optional[aiohttp.ClientSession] = None
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

        logger.debug(f"Initialized SP-API client for {self.endpoint}")

    async def initialize(self):
        """
        Initialize the HTTP session.

        Raises:
            AppException: If SP-API credentials are missing
        """
        if not self.settings.has_amazon_credentials:
            raise AppException(
                message="Missing Amazon SP-API configuration in environment variables.",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                details={"required": ["SELLER_ID", "LWA_CLIENT_ID", "LWA_CLIENT_SECRET", "REFRESH_TOKEN"]},
            )

        if self.session is not None:
            return

        timeout = ClientTimeout(total=self.settings.SP_API_TIMEOUT_SECONDS, connect=10)
        connector = aiohttp.TCPConnector(limit=20, limit_per_host=10)
        user_agent_name = self.settings.APP_NAME.replace(" ", "")

        self.session = aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            headers={"User-Agent": f"{user_agent_name}/{self.settings.APP_VERSION} (Language=Python)"},
        )
        logger.info(f"SP-API client initialized ({self.settings.SP_API_REGION})")

    async def close(self):
        """Close the HTTP session and clean up resources."""
        if self.session:
            await self.session.close()
            self.session = None
            logger.debug("SP-API client closed")

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_access_token(self) -> str:
        """
        Get a valid LWA access token, exchanging the refresh token if needed.

        Returns:
            str: Access token for the x-amz-access-token header
        """
        async with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            form = {
                "grant_type": "refresh_token",
                "refresh_token": self.settings.REFRESH_TOKEN,
                "client_id": self.settings.LWA_CLIENT_ID,
                "client_secret": self.settings.LWA_CLIENT_SECRET,
            }
            data = await self._send("POST", self.settings.LWA_TOKEN_URL, operation="lwaToken", data=form)

            access_token = data.get("access_token")
            if not access_token:
                raise PermanentRemoteException("LWA token response missing access_token", operation="lwaToken")

            expires_in = int(data.get("expires_in", 3600))
            self._access_token = access_token
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_REFRESH_MARGIN_SECONDS, 0)
            logger.debug(f"LWA access token refreshed (expires in {expires_in}s)")
            return access_token

    async def _send(
        self,
        method: str,
        url: str,
        operation: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Execute one HTTP request and translate failures.

        Raises:
            TransientRemoteException: For retryable failures (503, network)
            PermanentRemoteException: For any other failure
        """
        if not self.session:
            raise AppException(
                message="SP-API client not initialized. Call initialize() first.",
                error_code=ErrorCode.CONFIGURATION_ERROR,
            )

        try:
            async with self.session.request(method, url, headers=headers, **kwargs) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None

                if response.status >= 400:
                    self._raise_for_response(response.status, body, operation)

                return body if isinstance(body, dict) else {}

        except AmazonAPIException:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            info = normalize_remote_error(e)
            logger.debug(f"Network error during {operation}: {info.error_code} {info.message}")
            raise build_remote_exception(info, operation, message=f"Network error: {info.message}") from e

    def _raise_for_response(self, status: int, body: Any, operation: str):
        """
        Raise the typed exception for an error response.

        Args:
            status: HTTP status
            body: Decoded JSON body (may be None)
            operation: SP-API operation name
        """
        error_code = None
        message = f"HTTP {status}"

        if isinstance(body, dict):
            try:
                errors = SPAPIErrorResponse.model_validate(body)
            except ValidationError:
                errors = None

            if errors and errors.errors:
                error_code = errors.first_code
                message = f"HTTP {status}: {errors.summary}"
            elif body.get("error"):
                # Formato de error de LWA
                error_code = body.get("error")
                message = f"HTTP {status}: {body.get('error_description') or body.get('error')}"

        raise build_remote_exception(
            RemoteErrorInfo(status_code=status, error_code=error_code, message=message), operation
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Execute one authenticated SP-API request (single attempt).

        Returns:
            Dict: ``payload`` of the response when present, the whole body otherwise
        """
        access_token = await self._get_access_token()
        data = await self._send(
            method,
            f"{self.endpoint}{path}",
            operation=operation,
            headers={"x-amz-access-token": access_token},
            params=params,
            json=json,
        )
        return data.get("payload", data)

    async def _call(self, operation: Callable[[], Awaitable[Dict[str, Any]]], context: str) -> Dict[str, Any]:
        """Run a zero-argument SP-API call through the retry handler."""
        return await self.retry_handler.execute(operation, context=context)

    @staticmethod
    def _parse(model: Type[ModelT], data: Dict[str, Any], operation: str) -> ModelT:
        """
        Validate a response payload.

        Raises:
            PermanentRemoteException: If the payload is malformed
        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise PermanentRemoteException(
                f"Malformed {operation} response: {e.error_count()} validation errors", operation=operation
            ) from e
