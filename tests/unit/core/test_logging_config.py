"""Tests de la configuración de logging."""

import json
import logging

from app.core.config import get_settings
from app.core.logging_config import StructuredFormatter, get_logger, get_logging_configuration


def make_record(**extra):
    record = logging.LogRecord("app.utils.retry_handler", logging.WARNING, __file__, 10, "Retry %s", ("1/3",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_extra_fields_are_included(self):
        """Los campos de extra= aparecen en el JSON."""
        output = json.loads(
            StructuredFormatter().format(make_record(operation="amazon.retry", retry_number=1, delay_ms=1000))
        )

        assert output["message"] == "Retry 1/3"
        assert output["level"] == "WARNING"
        assert output["environment"] == "testing"
        assert output["extra"] == {"operation": "amazon.retry", "retry_number": 1, "delay_ms": 1000}

    def test_no_extra_key_without_extra_fields(self):
        assert "extra" not in json.loads(StructuredFormatter().format(make_record()))


class TestLoggingConfiguration:
    def test_json_console_and_rotating_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_JSON", "true")
        monkeypatch.setenv("LOG_FILE_PATH", str(tmp_path / "logs" / "app.log"))
        get_settings.cache_clear()

        config = get_logging_configuration(get_settings())

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["handlers"]["console"]["stream"] == "ext://sys.stderr"
        assert config["handlers"]["file"]["class"] == "logging.handlers.RotatingFileHandler"
        assert config["root"]["handlers"] == ["console", "file"]

    def test_plain_console_by_default(self):
        config = get_logging_configuration(get_settings())

        assert config["handlers"]["console"]["formatter"] == "colored"
        assert "file" not in config["handlers"]

    def test_get_logger_sets_attributes(self):
        logger = get_logger("app.test_logging", component="cli")

        assert logger.name == "app.test_logging"
        assert logger.component == "cli"
