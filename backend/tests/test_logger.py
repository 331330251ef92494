"""
Tests for logging setup and the shared model base.

Covers:
- Size strings from the [logging] section
- Handler set built from a logging config
- camelCase input and output on models, unknown keys rejected
"""

import logging
import logging.handlers

import pytest
from pydantic import ValidationError as PydanticValidationError

from core.logger import ERROR_FILE_NAME, LOG_FILE_NAME, build_handlers, parse_size
from models.requests import CreateCheckoutRequest


class TestParseSize:
    @pytest.mark.parametrize(
        "value, expected",
        [("512KB", 512 * 1024), ("10MB", 10 * 1024**2), ("1gb", 1024**3), ("2048", 2048), (4096, 4096)],
    )
    def test_units(self, value, expected):
        assert parse_size(value) == expected

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_size("lots")


class TestBuildHandlers:
    @pytest.fixture
    def handlers(self, tmp_path):
        built = build_handlers(
            {"logs_dir": str(tmp_path / "logs"), "max_file_size": "1MB", "backup_count": 2}
        )
        yield built
        for handler in built:
            handler.close()

    def test_console_and_two_files(self, handlers, tmp_path):
        console, main, errors = handlers
        assert isinstance(console, logging.StreamHandler)
        assert (tmp_path / "logs" / LOG_FILE_NAME).exists()
        assert (tmp_path / "logs" / ERROR_FILE_NAME).exists()
        assert main.level == logging.DEBUG
        assert errors.level == logging.ERROR

    def test_rotation_settings(self, handlers):
        for handler in handlers[1:]:
            assert isinstance(handler, logging.handlers.RotatingFileHandler)
            assert handler.maxBytes == 1024**2
            assert handler.backupCount == 2


class TestModelBase:
    def test_accepts_both_spellings(self):
        camel = CreateCheckoutRequest.model_validate({"timerId": "t1", "allocatedSeconds": 60})
        snake = CreateCheckoutRequest.model_validate({"timer_id": "t1", "allocated_seconds": 60})
        assert camel == snake

    def test_dumps_camel_case(self):
        body = CreateCheckoutRequest(timer_id="t1", allocated_seconds=60)
        assert body.model_dump() == {"timerId": "t1", "allocatedSeconds": 60}
        assert body.model_dump(by_alias=False)["timer_id"] == "t1"

    def test_unknown_key_rejected(self):
        with pytest.raises(PydanticValidationError):
            CreateCheckoutRequest.model_validate(
                {"timerId": "t1", "allocatedSeconds": 60, "priority": 1}
            )
