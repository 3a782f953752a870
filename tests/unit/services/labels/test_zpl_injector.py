"""Tests unitarios para la inyección del bloque SKU/QTY en etiquetas ZPL."""

import logging

import pytest

from app.services.labels.zpl_injector import (
    ZplInjector,
    build_injection_block,
    inject_sku_into_zpl,
    parse_coordinate,
    sanitize_quantity,
)
from app.services.labels.zpl_validator import validate_zpl

LABEL_4X6 = "^XA\n^PW812\n^LL1218\n^FO50,50^FDHello^FS\n^XZ"


@pytest.fixture
def injector():
    return ZplInjector()


class TestInjectBlock:
    """Tests para la inyección exitosa."""

    def test_inserts_block_before_final_end_command(self, injector):
        """Debe insertar caja y texto justo antes del último ^XZ."""
        result = injector.inject(LABEL_4X6, "SKU-PQR", 5)

        assert result.ok
        assert result.reason is None
        assert result.zpl == (
            "^XA\n^PW812\n^LL1218\n^FO50,50^FDHello^FS\n"
            "^FO50,1100^GB700,60,3^FS\n"
            "^FO50,1120^A0N,30,30^FD SKU: SKU-PQR  QTY: 5^FS\n"
            "^XZ"
        )
        assert (result.sku, result.quantity, result.x, result.y) == ("SKU-PQR", 5, 50, 1100)
        assert validate_zpl(result.zpl).ok

    def test_adds_newline_when_label_is_single_line(self, injector):
        """Debe separar el bloque con salto de línea si el ZPL no lo tiene."""
        result = injector.inject("^XA^FDHi^FS^XZ", "A", 1)

        assert result.ok
        assert result.zpl == (
            "^XA^FDHi^FS\n^FO50,1100^GB700,60,3^FS\n^FO50,1120^A0N,30,30^FD SKU: A  QTY: 1^FS\n^XZ"
        )

    def test_coordinate_overrides(self, injector):
        """Las coordenadas explícitas reemplazan a las por defecto y se redondean."""
        result = injector.inject(LABEL_4X6, "SKU", 1, x="100.6", y=200)

        assert result.ok
        assert (result.x, result.y) == (101, 200)
        assert "^FO101,200^GB700,60,3^FS" in result.zpl

    def test_unparseable_coordinate_falls_back_to_default(self, injector):
        """Una coordenada no numérica usa el valor por defecto."""
        result = injector.inject(LABEL_4X6, "SKU", 1, x="abc", y=float("nan"))

        assert result.ok
        assert (result.x, result.y) == (50, 1100)

    def test_coordinate_too_large_for_float_falls_back_to_default(self, injector):
        result = injector.inject(LABEL_4X6, "SKU", 1, x=10**400)

        assert result.ok
        assert result.x == 50

    def test_dry_run_returns_original(self, injector):
        """dry_run valida todo pero no modifica la etiqueta."""
        result = injector.inject(LABEL_4X6, "SKU-PQR", 5, dry_run=True)

        assert result.ok
        assert result.zpl == LABEL_4X6

    def test_label_without_dimensions_skips_bounds_check(self, injector):
        """Sin ^PW/^LL no hay chequeo de límites."""
        result = injector.inject("^XA^FDHi^FS^XZ", "SKU", 1, x=5000, y=5000)

        assert result.ok
        assert "^FO5000,5000^GB700,60,3^FS" in result.zpl

    def test_convenience_function(self):
        """inject_sku_into_zpl usa la configuración por defecto."""
        result = inject_sku_into_zpl(LABEL_4X6, "SKU-PQR", 5)

        assert result.ok
        assert "SKU: SKU-PQR  QTY: 5" in result.zpl


class TestInjectRejections:
    """Tests para los rechazos: siempre devuelven el original."""

    def test_block_wider_than_print_width(self, injector):
        """^PW800 con x=500: 500+700 > 800, se rechaza."""
        zpl = "^XA\n^PW800\n^LL1218\n^FDHi^FS\n^XZ"

        result = injector.inject(zpl, "SKU", 1, x=500, y=100)

        assert not result.ok
        assert result.zpl == zpl
        assert "print width" in result.reason

    def test_block_longer_than_label_length(self, injector):
        """El bloque no puede pasar del largo de la etiqueta."""
        zpl = "^XA^PW812^LL1100^FDHi^FS^XZ"

        result = injector.inject(zpl, "SKU", 1)

        assert not result.ok
        assert result.zpl == zpl
        assert "label length" in result.reason

    def test_invalid_label(self, injector):
        """Una etiqueta sin ^XA se rechaza con el error del validador."""
        result = injector.inject("^FDHi^FS^XZ", "SKU", 1)

        assert not result.ok
        assert result.zpl == "^FDHi^FS^XZ"
        assert "Missing ^XA start command" in result.reason

    def test_non_text_label(self, injector):
        """Un payload no textual se rechaza."""
        result = injector.inject(None, "SKU", 1)

        assert not result.ok
        assert result.zpl is None

    def test_non_text_label_is_returned_as_given(self, injector):
        payload = b"^XA^FDHi^FS^XZ"

        result = injector.inject(payload, "SKU", 1)

        assert not result.ok
        assert result.zpl is payload

    def test_negative_coordinate(self, injector):
        """Coordenadas negativas se rechazan."""
        result = injector.inject(LABEL_4X6, "SKU", 1, x=-5)

        assert not result.ok
        assert result.zpl == LABEL_4X6


class TestSanitizeSku:
    """Tests para la limpieza del SKU."""

    def test_long_sku_is_truncated_with_ellipsis(self, injector, caplog):
        """Un SKU de más de 20 caracteres se corta a 20 terminando en '...'."""
        sku = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

        with caplog.at_level(logging.WARNING, logger="app.services.labels.zpl_injector"):
            result = injector.inject(LABEL_4X6, sku, 1)

        assert result.ok
        assert result.sku == "ABCDEFGHIJKLMNOPQ..."
        assert len(result.sku) == 20
        assert "SKU: ABCDEFGHIJKLMNOPQ...  QTY: 1" in result.zpl
        assert len(result.warnings) == 1
        assert any("SKU truncated" in record.getMessage() for record in caplog.records)

    def test_sku_of_exact_max_length_is_kept(self, injector):
        assert injector.sanitize_sku("A" * 20) == "A" * 20

    def test_command_prefixes_are_stripped(self, injector):
        """^ y ~ se eliminan para no abrir comandos nuevos."""
        assert injector.sanitize_sku("^XA~JASKU") == "XAJASKU"

    @pytest.mark.parametrize("sku", [None, "", "   ", "^~"])
    def test_empty_sku_becomes_unknown(self, injector, sku):
        assert injector.sanitize_sku(sku) == "UNKNOWN"


class TestSanitizeQuantity:
    """Tests para la normalización de cantidades."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5, 5), (2.0, 2), ("3", 3), (2.5, 2.5), (0, 1), (-3, 1),
            ("abc", 1), (None, 1), (float("inf"), 1), (10**400, 1), (True, 1),
        ],
    )
    def test_sanitize_quantity(self, value, expected):
        assert sanitize_quantity(value) == expected

    def test_fractional_quantity_rendering(self):
        """Cantidades no enteras se imprimen sin ceros de más."""
        assert "QTY: 2.5^FS" in build_injection_block("SKU", 2.5, 0, 0)


class TestParseCoordinate:
    @pytest.mark.parametrize(
        "value,expected",
        [(None, None), ("", None), ("12", 12), (12.4, 12), ("x", None), (float("inf"), None), (10**400, None)]
    )
    def test_parse_coordinate(self, value, expected):
        assert parse_coordinate(value) == expected
