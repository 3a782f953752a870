"""
Sistema de manejo de errores personalizado.

Este módulo define todas las excepciones personalizadas de la aplicación
y proporciona utilidades para manejo consistente de errores.

Taxonomía:
- ValidationException: entrada inválida, nunca se reintenta
- NotFoundException: orden o etiqueta inexistente
- TransientRemoteException: falla remota reintentable (503, cuota, red)
- PermanentRemoteException: 4xx remoto o respuesta mal formada
- LabelFormatException: el ZPL no pasa la validación estructural
"""

import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """
    Códigos de error estandardizados para la aplicación.
    """

    # Errores generales
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Errores de datos locales
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    LABEL_NOT_FOUND = "LABEL_NOT_FOUND"
    LABEL_ALREADY_PURCHASED = "LABEL_ALREADY_PURCHASED"
    DATABASE_ERROR = "DATABASE_ERROR"

    # Errores de Amazon SP-API
    AMAZON_API_ERROR = "AMAZON_API_ERROR"
    AMAZON_TRANSIENT_ERROR = "AMAZON_TRANSIENT_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    NO_ELIGIBLE_SERVICES = "NO_ELIGIBLE_SERVICES"
    LABEL_DATA_MISSING = "LABEL_DATA_MISSING"

    # Errores de etiquetas ZPL
    LABEL_FORMAT_INVALID = "LABEL_FORMAT_INVALID"
    ZPL_INJECTION_REJECTED = "ZPL_INJECTION_REJECTED"

    # Errores de sincronización
    SYNC_FAILED = "SYNC_FAILED"


class ErrorSeverity(Enum):
    """
    Niveles de severidad para errores.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppException(Exception):
    """
    Excepción base para todas las excepciones personalizadas de la aplicación.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
    ):
        """
        Inicializa la excepción.

        Args:
            message: Mensaje de error
            error_code: Código de error estandardizado
            details: Información adicional del error
            status_code: Código HTTP equivalente
            severity: Severidad del error
            is_retryable: Si la operación puede reintentarse
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario.

        Returns:
            Dict: Representación de la excepción
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """String representation del error."""
        return self.message


class ValidationException(AppException):
    """
    Excepción para errores de validación de datos de entrada.
    """

    def __init__(
        self,
        message: str,
        field: str,
        invalid_value: Any = None,
        expected_format: Optional[str] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de validación.

        Args:
            message: Mensaje de error
            field: Campo que falló la validación
            invalid_value: Valor que causó el error
            expected_format: Formato esperado
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value
        self.expected_format = expected_format

        self.details.update(
            {
                "field": field,
                "invalid_value": str(invalid_value) if invalid_value is not None else None,
                "expected_format": expected_format,
            }
        )


class NotFoundException(AppException):
    """
    Excepción para recursos locales inexistentes.
    """

    def __init__(self, message: str, amazon_order_id: str, error_code: ErrorCode = ErrorCode.ORDER_NOT_FOUND, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=404,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.amazon_order_id = amazon_order_id
        self.details.update({"amazon_order_id": amazon_order_id})


class OrderNotFoundException(NotFoundException):
    """La orden no existe en la base de datos local."""

    def __init__(self, amazon_order_id: str, **kwargs):
        super().__init__(
            message="Order not found in local database.",
            amazon_order_id=amazon_order_id,
            error_code=ErrorCode.ORDER_NOT_FOUND,
            **kwargs,
        )


class LabelNotFoundException(NotFoundException):
    """La orden existe pero no tiene etiqueta guardada."""

    def __init__(self, amazon_order_id: str, **kwargs):
        super().__init__(
            message="No saved label found for this order. Label may not have been purchased yet.",
            amazon_order_id=amazon_order_id,
            error_code=ErrorCode.LABEL_NOT_FOUND,
            **kwargs,
        )


class LabelAlreadyPurchasedException(AppException):
    """
    La orden ya está en LabelBought; comprar otra etiqueta duplicaría el envío.
    """

    def __init__(self, amazon_order_id: str, **kwargs):
        super().__init__(
            message="Label already purchased for this order. Use reprint instead.",
            error_code=ErrorCode.LABEL_ALREADY_PURCHASED,
            status_code=409,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.amazon_order_id = amazon_order_id
        self.details.update({"amazon_order_id": amazon_order_id})


class AmazonAPIException(AppException):
    """
    Excepción base para errores de Amazon Selling Partner API.
    """

    def __init__(
        self,
        message: str,
        api_response_code: Optional[int] = None,
        api_error_code: Optional[str] = None,
        operation: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.AMAZON_API_ERROR,
        is_retryable: bool = False,
        **kwargs,
    ):
        """
        Inicializa la excepción de SP-API.

        Args:
            message: Mensaje de error
            api_response_code: Código HTTP devuelto por Amazon (None si es error de red)
            api_error_code: Código de error de Amazon o de red (QuotaExceeded, ECONNRESET...)
            operation: Operación de SP-API que falló
            error_code: Código de error estandardizado
            is_retryable: Si la operación puede reintentarse
            **kwargs: Argumentos adicionales para AppException
        """
        severity = ErrorSeverity.MEDIUM
        if api_response_code and api_response_code >= 500:
            severity = ErrorSeverity.HIGH

        super().__init__(
            message=message,
            error_code=error_code,
            status_code=502,
            severity=severity,
            is_retryable=is_retryable,
            **kwargs,
        )
        self.api_response_code = api_response_code
        self.api_error_code = api_error_code
        self.operation = operation

        self.details.update(
            {
                "api_response_code": api_response_code,
                "api_error_code": api_error_code,
                "operation": operation,
            }
        )


class TransientRemoteException(AmazonAPIException):
    """
    Falla remota clasificada como reintentable (503, cuota excedida, red).
    """

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.AMAZON_TRANSIENT_ERROR)
        super().__init__(message=message, is_retryable=True, **kwargs)


class PermanentRemoteException(AmazonAPIException):
    """
    Falla remota definitiva: 4xx de Amazon o respuesta mal formada.
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, is_retryable=False, **kwargs)


class NoEligibleServicesException(PermanentRemoteException):
    """Amazon no devolvió servicios de envío elegibles."""

    def __init__(self, amazon_order_id: str, **kwargs):
        super().__init__(
            message="No eligible shipping services returned from Amazon.",
            error_code=ErrorCode.NO_ELIGIBLE_SERVICES,
            operation="getEligibleShipmentServices",
            **kwargs,
        )
        self.details.update({"amazon_order_id": amazon_order_id})


class LabelDataMissingException(PermanentRemoteException):
    """La respuesta de createShipment no trae envío, etiqueta o contenido."""

    def __init__(self, message: str, amazon_order_id: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.LABEL_DATA_MISSING,
            operation="createShipment",
            **kwargs,
        )
        self.details.update({"amazon_order_id": amazon_order_id})


class LabelFormatException(AppException):
    """
    Excepción para etiquetas ZPL que no pasan la validación estructural.

    El documento original siempre se conserva sin modificar en ``original_zpl``.
    """

    def __init__(
        self,
        message: str,
        original_zpl: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.LABEL_FORMAT_INVALID,
        **kwargs,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=422,
            severity=ErrorSeverity.MEDIUM,
            **kwargs,
        )
        self.original_zpl = original_zpl


class ZplInjectionRejectedException(LabelFormatException):
    """El inyector rechazó agregar el bloque SKU/QTY a la etiqueta."""

    def __init__(self, reason: str, amazon_order_id: Optional[str] = None, original_zpl: Optional[str] = None):
        super().__init__(
            message=f"ZPL injection rejected: {reason}",
            original_zpl=original_zpl,
            error_code=ErrorCode.ZPL_INJECTION_REJECTED,
        )
        self.reason = reason
        self.details.update({"amazon_order_id": amazon_order_id, "reason": reason})


class DatabaseException(AppException):
    """
    Excepción para errores de la base de datos local.
    """

    def __init__(self, message: str, operation: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.DATABASE_ERROR,
            status_code=503,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.operation = operation
        self.details.update({"operation": operation})


class SyncException(AppException):
    """
    Excepción para errores de sincronización de órdenes.
    """

    def __init__(
        self,
        message: str,
        service: str,
        operation: str,
        sync_stats: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de sincronización.

        Args:
            message: Mensaje de error
            service: Servicio involucrado (amazon, database)
            operation: Operación que falló
            sync_stats: Estadísticas de la sincronización
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.SYNC_FAILED,
            status_code=500,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.service = service
        self.operation = operation
        self.sync_stats = sync_stats or {}

        self.details.update({"service": service, "operation": operation, "sync_stats": sync_stats})


# === FUNCIONES DE UTILIDAD ===


def create_error_response(exception: Union[AppException, Exception], include_traceback: bool = False) -> Dict[str, Any]:
    """
    Crea respuesta de error estandardizada.

    Args:
        exception: Excepción a convertir
        include_traceback: Si incluir traceback

    Returns:
        Dict: Respuesta de error
    """
    if isinstance(exception, AppException):
        error_dict = exception.to_dict()
    else:
        error_dict = AppException(
            message=f"{type(exception).__name__}: {exception}",
            details={"original_exception": type(exception).__name__},
        ).to_dict()

    if include_traceback:
        error_dict["traceback"] = "".join(
            traceback.format_exception(type(exception), exception, exception.__traceback__)
        )

    return {"error": True, **error_dict}


def log_error(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Loggea un error de manera consistente.

    Args:
        exception: Excepción a loggear
        context: Contexto adicional
        level: Nivel de logging
    """
    context = context or {}

    log_data = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        **context,
    }

    if isinstance(exception, AppException):
        message = f"{exception.error_code.value}: {exception.message}"
        log_data.update(
            {
                "error_code": exception.error_code.value,
                "severity": exception.severity.value,
                "is_retryable": exception.is_retryable,
            }
        )
    else:
        message = f"Unhandled exception: {type(exception).__name__}: {str(exception)}"

    logger.log(level, message, extra=log_data)


def error_code_of(exception: Exception) -> str:
    """
    Obtiene el código de error de cualquier excepción.

    Args:
        exception: Excepción a inspeccionar

    Returns:
        str: Código estandardizado (UNKNOWN_ERROR para excepciones ajenas)
    """
    if isinstance(exception, AppException):
        return exception.error_code.value
    return ErrorCode.UNKNOWN_ERROR.value
