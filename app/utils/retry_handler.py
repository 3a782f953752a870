"""
Sistema de manejo de reintentos para llamadas a Amazon SP-API.

Este módulo implementa reintentos con backoff exponencial guiados por
clasificación de errores:

1. Normalización: cualquier error de transporte (aiohttp, asyncio, OSError,
   AmazonAPIException, objetos con status/errors) se reduce a un único
   RemoteErrorInfo {status_code, error_code, message}.
2. Clasificación (en orden de prioridad):
   - HTTP 503 → reintentable
   - Cualquier otro HTTP >= 400 → no reintentable
   - QuotaExceeded (código o texto) → reintentable
   - Errores de red (timeout, reset, refused, DNS...) → reintentable
   - Cualquier otro → no reintentable
3. Backoff: base_delay_ms * 2^intento (1s, 2s, 4s con los valores por defecto).

Al agotar los reintentos se relanza la última excepción sin modificar.
"""

import asyncio
import errno
import logging
import socket
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import aiohttp

from app.core.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUOTA_EXCEEDED_CODE = "QuotaExceeded"

RETRYABLE_NETWORK_CODES = frozenset(
    {
        "ETIMEDOUT",
        "ESOCKETTIMEDOUT",
        "ECONNRESET",
        "ECONNREFUSED",
        "EAI_AGAIN",
        "ENOTFOUND",
        "ECONNABORTED",
        "ENETUNREACH",
    }
)


@dataclass(frozen=True)
class RemoteErrorInfo:
    """Forma canónica de un error remoto antes de clasificarlo."""

    status_code: Optional[int]
    error_code: Optional[str]
    message: str


@dataclass(frozen=True)
class RetryEvent:
    """Evento emitido antes de cada reintento."""

    context: Optional[str]
    retry_number: int
    max_retries: int
    delay_ms: int
    error: BaseException


def _coerce_status(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _extract_status(error: BaseException) -> Optional[int]:
    """Busca el código HTTP en las ubicaciones conocidas."""
    for attr in ("api_response_code", "statusCode", "status"):
        status = _coerce_status(getattr(error, attr, None))
        if status is not None:
            return status

    # AppException.status_code es el código propio de la app, no el remoto
    from app.utils.error_handler import AppException

    if not isinstance(error, AppException):
        status = _coerce_status(getattr(error, "status_code", None))
        if status is not None:
            return status

    response = getattr(error, "response", None)
    if response is not None:
        return _coerce_status(getattr(response, "status", None) or getattr(response, "status_code", None))
    return None


def _extract_error_code(error: BaseException) -> Optional[str]:
    """Busca el código de error remoto o de red."""
    code = getattr(error, "api_error_code", None) or getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code

    errors = getattr(error, "errors", None)
    if isinstance(errors, (list, tuple)) and errors:
        first = errors[0]
        first_code = first.get("code") if isinstance(first, dict) else getattr(first, "code", None)
        if first_code:
            return str(first_code)

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, aiohttp.ServerTimeoutError)):
        return "ETIMEDOUT"
    if isinstance(error, aiohttp.ServerDisconnectedError):
        return "ECONNRESET"
    if isinstance(error, socket.gaierror):
        return "EAI_AGAIN" if error.errno == socket.EAI_AGAIN else "ENOTFOUND"

    os_error = getattr(error, "os_error", None) if isinstance(error, aiohttp.ClientConnectorError) else error
    if isinstance(os_error, socket.gaierror):
        return "EAI_AGAIN" if os_error.errno == socket.EAI_AGAIN else "ENOTFOUND"
    if isinstance(os_error, OSError) and os_error.errno in errno.errorcode:
        return errno.errorcode[os_error.errno]
    return None


def normalize_remote_error(error: BaseException) -> RemoteErrorInfo:
    """
    Normaliza cualquier error de transporte a RemoteErrorInfo.

    Args:
        error: Excepción capturada durante la llamada remota

    Returns:
        RemoteErrorInfo: status_code, error_code y message
    """
    return RemoteErrorInfo(
        status_code=_extract_status(error),
        error_code=_extract_error_code(error),
        message=str(error) or type(error).__name__,
    )


def classify_remote_error(info: RemoteErrorInfo) -> bool:
    """
    Determina si un error normalizado es reintentable.

    Args:
        info: Error normalizado

    Returns:
        bool: True si debe reintentarse
    """
    if info.status_code == 503:
        return True

    if info.status_code is not None and info.status_code >= 400:
        return False

    if info.error_code == QUOTA_EXCEEDED_CODE or QUOTA_EXCEEDED_CODE in info.message:
        return True

    if info.error_code in RETRYABLE_NETWORK_CODES:
        return True

    return "timeout" in info.message.lower()


def is_retryable_error(error: BaseException) -> bool:
    """Atajo: normaliza y clasifica en un solo paso."""
    return classify_remote_error(normalize_remote_error(error))


class RetryPolicy:
    """
    Política de reintentos configurable.
    """

    def __init__(self, max_retries: Optional[int] = None, base_delay_ms: Optional[int] = None):
        """
        Inicializa la política de reintentos.

        Args:
            max_retries: Reintentos máximos tras el primer intento (default: AMAZON_MAX_RETRIES)
            base_delay_ms: Delay base en milisegundos (default: AMAZON_RETRY_BASE_DELAY_MS)
        """
        settings = get_settings()
        self.max_retries = settings.AMAZON_MAX_RETRIES if max_retries is None else max_retries
        self.base_delay_ms = settings.AMAZON_RETRY_BASE_DELAY_MS if base_delay_ms is None else base_delay_ms

    def should_retry(self, error: BaseException, attempt_index: int) -> bool:
        """
        Determina si debe reintentar la operación.

        Args:
            error: Excepción que ocurrió
            attempt_index: Índice del intento que falló (0 = primer intento)

        Returns:
            bool: True si debe reintentar
        """
        if attempt_index >= self.max_retries:
            return False
        return is_retryable_error(error)

    def delay_ms_for(self, attempt_index: int) -> int:
        """
        Calcula el delay antes del siguiente intento.

        Args:
            attempt_index: Índice del intento que falló (0..max_retries-1)

        Returns:
            int: Milisegundos a esperar
        """
        return self.base_delay_ms * (2**attempt_index)


RetryListener = Callable[[RetryEvent], None]


class RetryHandler:
    """
    Ejecutor de llamadas remotas con reintentos clasificados.

    Example:
        ```python
        handler = create_amazon_retry_handler()
        orders = await handler.execute(lambda: client.get_orders(), context="getOrders")
        ```
    """

    def __init__(
        self,
        name: str,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        """
        Inicializa el manejador de reintentos.

        Args:
            name: Nombre identificativo del handler
            retry_policy: Política de reintentos
            sleep: Función de espera (inyectable para tests)
        """
        self.name = name
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self._listeners: List[RetryListener] = []

        self.metrics = {
            "total_calls": 0,
            "total_successes": 0,
            "total_failures": 0,
            "total_retries": 0,
        }

    def add_listener(self, listener: RetryListener) -> None:
        """Registra un observador de eventos de reintento."""
        self._listeners.append(listener)

    async def execute(self, operation: Callable[[], Awaitable[T]], context: Optional[str] = None) -> T:
        """
        Ejecuta una operación asíncrona sin argumentos con reintentos.

        Args:
            operation: Callable sin argumentos que devuelve un awaitable
            context: Etiqueta de contexto para logs y eventos

        Returns:
            Resultado de la operación

        Raises:
            Exception: La última excepción, sin modificar
        """
        self.metrics["total_calls"] += 1
        attempt_index = 0

        while True:
            try:
                result = await operation()
                self.metrics["total_successes"] += 1
                return result

            except Exception as e:
                if not self.retry_policy.should_retry(e, attempt_index):
                    self.metrics["total_failures"] += 1
                    if attempt_index > 0:
                        logger.error(
                            f"All retry attempts failed for {self.name}"
                            f"{f' ({context})' if context else ''}: {type(e).__name__}: {e}",
                            extra={"operation": "amazon.retry_exhausted", "context": context, "attempts": attempt_index + 1},
                        )
                    raise

                delay_ms = self.retry_policy.delay_ms_for(attempt_index)
                event = RetryEvent(
                    context=context,
                    retry_number=attempt_index + 1,
                    max_retries=self.retry_policy.max_retries,
                    delay_ms=delay_ms,
                    error=e,
                )
                self._emit(event)
                self.metrics["total_retries"] += 1

                await self._sleep(delay_ms / 1000)
                attempt_index += 1

    def _emit(self, event: RetryEvent) -> None:
        """Loggea el reintento y notifica a los observadores."""
        logger.warning(
            f"Retrying Amazon SP-API call{f' for {event.context}' if event.context else ''} "
            f"in {event.delay_ms}ms - retry {event.retry_number}/{event.max_retries}",
            extra={
                "operation": "amazon.retry",
                "context": event.context,
                "retry_number": event.retry_number,
                "max_retries": event.max_retries,
                "delay_ms": event.delay_ms,
                "error_message": str(event.error),
            },
        )
        for listener in self._listeners:
            listener(event)

    def get_metrics(self) -> dict:
        """Obtiene métricas del handler."""
        return {**self.metrics, "handler_name": self.name}


def create_amazon_retry_handler(sleep: Optional[Callable[[float], Awaitable[Any]]] = None) -> RetryHandler:
    """
    Crea un handler específico para operaciones de Amazon SP-API.

    Returns:
        RetryHandler: Handler configurado desde settings
    """
    return RetryHandler(name="amazon_sp_api", retry_policy=RetryPolicy(), sleep=sleep)
