"""Unit tests for core.logger module."""

import json
import logging

import pytest
import structlog

from core.logger import configure_logging, get_logger, mask_email


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestMaskEmail:
    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            ("asha.verma@example.com", "a***@example.com"),
            ("x@y.in", "x***@y.in"),
            ("not-an-email", "***"),
            ("@example.com", "***"),
        ],
    )
    def test_masks_local_part(self, address, expected):
        assert mask_email(address) == expected


@pytest.mark.unit
class TestConfigureLogging:
    def test_json_output_masks_recipient(self, monkeypatch, capsys, restore_logging):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging()

        get_logger("tests.logger").info(
            "email.sent", recipient="asha.verma@example.com", refused=0
        )

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "email.sent"
        assert event["recipient"] == "a***@example.com"
        assert event["refused"] == 0
        assert event["level"] == "info"

    def test_stdlib_extra_fields_included(self, monkeypatch, capsys, restore_logging):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging()

        logging.getLogger("tests.stdlib").warning(
            "ratelimit.exceeded", extra={"client": "203.0.113.7"}
        )

        event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert event["event"] == "ratelimit.exceeded"
        assert event["client"] == "203.0.113.7"

    def test_quiets_noisy_libraries(self, restore_logging):
        configure_logging()

        assert logging.getLogger("aiosmtplib").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
