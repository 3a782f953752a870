"""Tests unitarios para el ejecutor de llamadas remotas con reintentos."""

import asyncio
import errno
import logging
from unittest.mock import AsyncMock

import aiohttp
import pytest

from app.utils.error_handler import PermanentRemoteException, TransientRemoteException
from app.utils.retry_handler import (
    RemoteErrorInfo,
    RetryHandler,
    RetryPolicy,
    classify_remote_error,
    create_amazon_retry_handler,
    is_retryable_error,
    normalize_remote_error,
)


class FakeRemoteError(Exception):
    """Error con la forma de un SDK genérico: status, code y errors opcionales."""

    def __init__(self, message="remote failure", status=None, code=None, errors=None):
        super().__init__(message)
        if status is not None:
            self.status = status
        if code is not None:
            self.code = code
        if errors is not None:
            self.errors = errors


class TestNormalizeRemoteError:
    """Tests para la normalización de errores remotos."""

    def test_normalizes_amazon_api_exception(self):
        """Debe tomar status y código de AmazonAPIException."""
        error = PermanentRemoteException("HTTP 400: InvalidInput", api_response_code=400, api_error_code="InvalidInput")

        info = normalize_remote_error(error)

        assert info == RemoteErrorInfo(status_code=400, error_code="InvalidInput", message="HTTP 400: InvalidInput")

    def test_app_status_code_is_not_remote_status(self):
        """No debe confundir el status_code propio de la app con el remoto."""
        error = TransientRemoteException("Network error: reset", api_error_code="ECONNRESET")

        info = normalize_remote_error(error)

        assert info.status_code is None
        assert info.error_code == "ECONNRESET"

    def test_reads_error_code_from_errors_list(self):
        """Debe leer el código del primer elemento de errors."""
        error = FakeRemoteError("throttled", errors=[{"code": "QuotaExceeded", "message": "You exceeded your quota"}])

        assert normalize_remote_error(error).error_code == "QuotaExceeded"

    def test_asyncio_timeout_maps_to_etimedout(self):
        """Debe mapear timeouts de asyncio a ETIMEDOUT."""
        assert normalize_remote_error(asyncio.TimeoutError()).error_code == "ETIMEDOUT"

    def test_server_disconnected_maps_to_econnreset(self):
        """Debe mapear desconexiones de aiohttp a ECONNRESET."""
        assert normalize_remote_error(aiohttp.ServerDisconnectedError()).error_code == "ECONNRESET"

    def test_os_error_uses_errno_name(self):
        """Debe usar el nombre del errno para errores del sistema."""
        error = ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")

        assert normalize_remote_error(error).error_code == "ECONNREFUSED"

    def test_response_status_fallback(self):
        """Debe leer response.status cuando el error no tiene status propio."""
        error = FakeRemoteError("bad gateway")
        error.response = type("Response", (), {"status": 503})()

        assert normalize_remote_error(error).status_code == 503


class TestClassification:
    """Tests para la clasificación reintentable / no reintentable."""

    def test_503_is_retryable(self):
        """503 siempre se reintenta."""
        assert classify_remote_error(RemoteErrorInfo(503, None, "Service Unavailable")) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 429, 500, 502])
    def test_other_http_errors_are_not_retryable(self, status):
        """Cualquier otro status >= 400 no se reintenta, incluido 429."""
        assert classify_remote_error(RemoteErrorInfo(status, None, f"HTTP {status}")) is False

    def test_status_wins_over_quota_code(self):
        """El status HTTP tiene prioridad sobre QuotaExceeded."""
        assert classify_remote_error(RemoteErrorInfo(400, "QuotaExceeded", "QuotaExceeded")) is False

    def test_quota_exceeded_code_is_retryable(self):
        """QuotaExceeded sin status se reintenta."""
        assert classify_remote_error(RemoteErrorInfo(None, "QuotaExceeded", "throttled")) is True

    def test_quota_exceeded_in_message_is_retryable(self):
        """QuotaExceeded dentro del mensaje también se reintenta."""
        assert classify_remote_error(RemoteErrorInfo(None, None, "Request failed: QuotaExceeded")) is True

    @pytest.mark.parametrize(
        "code",
        ["ETIMEDOUT", "ESOCKETTIMEDOUT", "ECONNRESET", "ECONNREFUSED", "EAI_AGAIN", "ENOTFOUND", "ECONNABORTED", "ENETUNREACH"],
    )
    def test_network_codes_are_retryable(self, code):
        """Los códigos de red conocidos se reintentan."""
        assert classify_remote_error(RemoteErrorInfo(None, code, "socket error")) is True

    def test_timeout_in_message_is_retryable(self):
        """Un mensaje con 'timeout' se reintenta."""
        assert is_retryable_error(FakeRemoteError("Read Timeout while waiting for response")) is True

    def test_unknown_error_is_not_retryable(self):
        """Cualquier otro error no se reintenta."""
        assert is_retryable_error(ValueError("bad value")) is False


class TestRetryPolicy:
    """Tests para la política de backoff."""

    def test_exponential_delays(self):
        """Debe duplicar el delay en cada intento, sin jitter."""
        policy = RetryPolicy(max_retries=3, base_delay_ms=1000)

        assert [policy.delay_ms_for(i) for i in range(3)] == [1000, 2000, 4000]

    def test_defaults_from_settings(self):
        """Debe tomar los valores por defecto de la configuración."""
        policy = RetryPolicy()

        assert policy.max_retries == 3
        assert policy.base_delay_ms == 1000

    def test_stops_after_max_retries(self):
        """No debe reintentar cuando se agotó el presupuesto."""
        policy = RetryPolicy(max_retries=2, base_delay_ms=10)
        error = FakeRemoteError(status=503)

        assert policy.should_retry(error, 1) is True
        assert policy.should_retry(error, 2) is False


class TestRetryHandlerExecute:
    """Tests para RetryHandler.execute."""

    @pytest.mark.asyncio
    async def test_three_503_then_success(self, retry_handler, sleep_mock):
        """Tres 503 seguidos de éxito: devuelve el resultado tras 1000/2000/4000 ms."""
        operation = AsyncMock(
            side_effect=[
                TransientRemoteException("HTTP 503", api_response_code=503),
                TransientRemoteException("HTTP 503", api_response_code=503),
                TransientRemoteException("HTTP 503", api_response_code=503),
                {"Orders": []},
            ]
        )
        events = []
        retry_handler.add_listener(events.append)

        result = await retry_handler.execute(operation, context="getOrders")

        assert result == {"Orders": []}
        assert operation.await_count == 4
        assert [event.delay_ms for event in events] == [1000, 2000, 4000]
        assert [event.retry_number for event in events] == [1, 2, 3]
        assert all(event.max_retries == 3 and event.context == "getOrders" for event in events)
        assert [call.args[0] for call in sleep_mock.await_args_list] == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_400_is_raised_immediately(self, retry_handler, sleep_mock):
        """Un 400 se propaga sin reintentos y sin esperas."""
        error = PermanentRemoteException("HTTP 400", api_response_code=400)
        operation = AsyncMock(side_effect=error)
        events = []
        retry_handler.add_listener(events.append)

        with pytest.raises(PermanentRemoteException) as exc_info:
            await retry_handler.execute(operation, context="createShipment")

        assert exc_info.value is error
        assert operation.await_count == 1
        assert events == []
        sleep_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exhausted_retries_reraise_original_error(self, retry_handler):
        """Al agotar reintentos relanza el último error sin envolverlo."""
        errors = [TransientRemoteException(f"HTTP 503 #{i}", api_response_code=503) for i in range(4)]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(TransientRemoteException) as exc_info:
            await retry_handler.execute(operation)

        assert exc_info.value is errors[-1]
        assert operation.await_count == 4
        assert retry_handler.get_metrics()["total_retries"] == 3
        assert retry_handler.get_metrics()["total_failures"] == 1

    @pytest.mark.asyncio
    async def test_network_error_is_retried(self, retry_handler):
        """Un reset de conexión se reintenta."""
        operation = AsyncMock(side_effect=[ConnectionResetError(errno.ECONNRESET, "reset by peer"), "ok"])

        assert await retry_handler.execute(operation) == "ok"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_emits_warning_log(self, retry_handler, caplog):
        """Cada reintento deja un WARNING con operation=amazon.retry."""
        operation = AsyncMock(side_effect=[FakeRemoteError("QuotaExceeded"), "ok"])

        with caplog.at_level(logging.WARNING, logger="app.utils.retry_handler"):
            await retry_handler.execute(operation, context="getOrderItems 123")

        records = [r for r in caplog.records if getattr(r, "operation", None) == "amazon.retry"]
        assert len(records) == 1
        assert records[0].retry_number == 1
        assert records[0].delay_ms == 1000
        assert records[0].context == "getOrderItems 123"

    @pytest.mark.asyncio
    async def test_factory_uses_settings(self, sleep_mock):
        """El factory arma un handler con la política de la configuración."""
        handler = create_amazon_retry_handler(sleep=sleep_mock)

        assert handler.name == "amazon_sp_api"
        assert handler.retry_policy.max_retries == 3
        assert handler.retry_policy.base_delay_ms == 1000
