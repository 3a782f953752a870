"""Tests de la herramienta de línea de comandos con la fuente simulada."""

import json
import logging
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from app import cli
from app.container import build_services
from app.domain.models import ShippingDefaults
from app.domain.value_objects import Dimensions, Weight
from app.utils.error_handler import OrderNotFoundException, ValidationException

PACKAGE_ARGS = ["--weight", "200", "--length", "10", "--width", "6", "--height", "2"]


@pytest_asyncio.fixture
async def services(test_settings, conn_db, retry_handler):
    """Contenedor real con SQLite en memoria y órdenes ya sincronizadas."""
    async with build_services(settings=test_settings, conn_db=conn_db, retry_handler=retry_handler) as container:
        await container.synchronizer.sync_orders()
        yield container


def parse(*argv):
    return cli.build_parser().parse_args(list(argv))


class TestParser:
    def test_buy_label_package_is_optional(self):
        args = parse("buy-label", "ORDER-1")

        assert args.order_id == "ORDER-1"
        assert cli.package_from_args(args) is None

    def test_bulk_buy_requires_package(self):
        with pytest.raises(SystemExit):
            parse("bulk-buy", "A", "B", "--weight", "1")

    def test_package_from_args(self):
        args = parse("bulk-buy", "A", *PACKAGE_ARGS, "--weight-unit", "LB", "--dim-unit", "cm")

        weight, dimensions = cli.package_from_args(args)

        assert weight == Weight(200.0, "lb")
        assert dimensions == Dimensions(10.0, 6.0, 2.0, "cm")
        assert args.order_ids == ["A"]

    def test_partial_package_is_rejected(self):
        """Pasar solo algunas medidas es un error, no un default silencioso."""
        args = parse("buy-label", "ORDER-1", "--weight", "3", "--length", "10")

        with pytest.raises(ValidationException) as exc_info:
            cli.package_from_args(args)

        assert "--width" in exc_info.value.message
        assert "--height" in exc_info.value.message

    def test_list_orders_status_choices(self):
        assert parse("list-orders", "--status", "LabelBought").status == "LabelBought"
        with pytest.raises(SystemExit):
            parse("list-orders", "--status", "Shipped")


class TestRunCommand:
    """Tests de run_command contra el contenedor real."""

    @pytest.mark.asyncio
    async def test_sync_prints_counts(self, services, capsys):
        exit_code = await cli.run_command(parse("sync"), services)

        assert exit_code == cli.EXIT_OK
        assert json.loads(capsys.readouterr().out)["synced"] == 4

    @pytest.mark.asyncio
    async def test_list_orders(self, services, capsys):
        await cli.run_command(parse("list-orders", "--status", "Unshipped"), services)

        listed = json.loads(capsys.readouterr().out)
        assert sorted(order["amazon_order_id"] for order in listed) == [
            "MOCK-ORDER-4",
            "MOCK-ORDER-5",
            "MOCK-ORDER-6",
            "MOCK-ORDER-7",
        ]
        assert "label_zpl" not in listed[0]

    @pytest.mark.asyncio
    async def test_buy_label_writes_zpl_file(self, services, capsys, tmp_path):
        """Con --output el ZPL va al archivo y stdout solo trae el resumen."""
        output = tmp_path / "labels" / "order.zpl"

        exit_code = await cli.run_command(parse("buy-label", "MOCK-ORDER-4", *PACKAGE_ARGS, "-o", str(output)), services)

        assert exit_code == cli.EXIT_OK
        assert "SKU: SKU-PQR  QTY: 5" in output.read_text(encoding="utf-8")
        summary = json.loads(capsys.readouterr().out)
        assert summary["tracking_id"] == "MOCK-TRACKING-MOCK-ORDER-4"
        assert "zpl" not in summary

    @pytest.mark.asyncio
    async def test_buy_label_uses_saved_defaults(self, services, capsys):
        """Sin paquete explícito se usan los valores guardados del SKU."""
        await services.defaults_repository.upsert(
            ShippingDefaults("SKU-STU", Weight(1.2, "kg"), Dimensions(30, 20, 10, "cm"))
        )

        exit_code = await cli.run_command(parse("buy-label", "MOCK-ORDER-5"), services)

        assert exit_code == cli.EXIT_OK
        assert json.loads(capsys.readouterr().out)["tracking_id"] == "MOCK-TRACKING-MOCK-ORDER-5"

    @pytest.mark.asyncio
    async def test_buy_label_without_package_or_defaults(self, services):
        with pytest.raises(ValidationException):
            await cli.run_command(parse("buy-label", "MOCK-ORDER-6"), services)

    @pytest.mark.asyncio
    async def test_bulk_buy_with_failure_exits_with_error(self, services, capsys, tmp_path):
        """Una falla en el lote da código 1 pero las etiquetas exitosas se escriben."""
        output = tmp_path / "bulk.zpl"

        exit_code = await cli.run_command(
            parse("bulk-buy", "MOCK-ORDER-4", "MISSING-ORDER", "MOCK-ORDER-7", *PACKAGE_ARGS, "-o", str(output)),
            services,
        )

        assert exit_code == cli.EXIT_ERROR
        assert output.read_text(encoding="utf-8").count("^XA") == 2
        report = json.loads(capsys.readouterr().out)
        assert report["summary"] == {"total": 3, "succeeded": 2, "failed": 1}
        assert report["failed"][0]["error_code"] == "ORDER_NOT_FOUND"
        assert "zpl" not in report

    @pytest.mark.asyncio
    async def test_reprint_to_stdout(self, services, capsys):
        await cli.run_command(parse("buy-label", "MOCK-ORDER-7", *PACKAGE_ARGS), services)
        purchased = json.loads(capsys.readouterr().out)["zpl"]

        exit_code = await cli.run_command(parse("reprint", "MOCK-ORDER-7"), services)

        assert exit_code == cli.EXIT_OK
        assert capsys.readouterr().out == purchased + "\n"

    @pytest.mark.asyncio
    async def test_defaults_command(self, services, capsys):
        await cli.run_command(parse("defaults", "SKU-NONE"), services)

        assert json.loads(capsys.readouterr().out) is None


class TestMainAsync:
    @pytest.mark.asyncio
    async def test_app_exception_is_reported_on_stderr(self, monkeypatch, capsys, caplog):
        """Los errores de la app salen como JSON en stderr con código 1."""
        container = MagicMock()
        container.orchestrator.reprint_label = AsyncMock(side_effect=OrderNotFoundException("MISSING-ORDER"))

        @asynccontextmanager
        async def fake_build_services(settings):
            yield container

        monkeypatch.setattr(cli, "setup_logging", MagicMock())
        monkeypatch.setattr(cli, "build_services", fake_build_services)

        with caplog.at_level(logging.ERROR, logger="app.utils.error_handler"):
            exit_code = await cli.main_async(["reprint", "MISSING-ORDER"])

        assert exit_code == cli.EXIT_ERROR
        record = next(r for r in caplog.records if getattr(r, "operation", None) == "cli.reprint")
        assert record.error_code == "ORDER_NOT_FOUND"
        error = json.loads(capsys.readouterr().err)
        assert error["error_code"] == "ORDER_NOT_FOUND"
        assert error["details"]["amazon_order_id"] == "MISSING-ORDER"

    @pytest.mark.asyncio
    async def test_mock_flag_forces_simulated_source(self, monkeypatch, capsys):
        seen = {}
        container = MagicMock()
        container.orchestrator.get_shipping_defaults = AsyncMock(return_value=None)

        @asynccontextmanager
        async def fake_build_services(settings):
            seen["use_mock"] = settings.USE_MOCK
            yield container

        monkeypatch.setenv("USE_MOCK", "false")
        cli.get_settings.cache_clear()
        monkeypatch.setattr(cli, "setup_logging", MagicMock())
        monkeypatch.setattr(cli, "build_services", fake_build_services)

        assert await cli.main_async(["--mock", "defaults", "SKU-1"]) == cli.EXIT_OK
        assert seen["use_mock"] is True
