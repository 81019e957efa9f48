"""
Shared module tests: error values, config, logging and notification sinks.
"""
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from redis.exceptions import AuthenticationError, ConnectionError, ResponseError, TimeoutError

from src.shared.config import AppConfig
from src.shared.errors import (
    AppErrors,
    BackendCallError,
    ErrorKind,
    StaleReferenceError,
    StoreError,
    format_redis_error,
)
from src.shared.logging_config import configure_logging
from src.shared.notifications import LoggingNotifier, NotificationKind, ToastNotifier


def test_store_error_from_backend_error():
    error = StoreError.from_exception(BackendCallError("nope", kind=ErrorKind.NOT_CONNECTED))

    assert error == StoreError(kind=ErrorKind.NOT_CONNECTED, message="nope")
    assert str(error) == "nope"


def test_store_error_from_unexpected_exception():
    error = StoreError.from_exception(RuntimeError("weird"))
    assert error.kind == ErrorKind.UNEXPECTED
    assert error.message == "weird"


def test_stale_reference_error():
    error = StaleReferenceError(7)

    assert isinstance(error, BackendCallError)
    assert error.kind == ErrorKind.STALE_REFERENCE
    assert error.connection_id == 7
    assert "id=7" in error.message


def test_format_redis_error():
    assert format_redis_error(AuthenticationError("invalid password")) == AppErrors.REDIS_AUTH_FAILED
    assert format_redis_error(TimeoutError("Timeout reading")) == AppErrors.REDIS_TIMEOUT
    assert format_redis_error(ConnectionError("Connection refused")) == AppErrors.REDIS_UNREACHABLE
    assert format_redis_error(ConnectionError("Socket closed")) == "Redis connection error: Socket closed"
    assert format_redis_error(ResponseError("WRONGTYPE")) == "Redis error: WRONGTYPE"


def test_app_config_defaults():
    config = AppConfig()

    assert config.data_root == Path("./data")
    assert config.default_key_pattern == "*"
    assert config.app_db_path == Path("./data/app.sqlite")
    assert config.notifier == "log"


def test_app_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("REDIS_BROWSER_DATA_ROOT", str(tmp_path))
    monkeypatch.setenv("REDIS_BROWSER_SOCKET_TIMEOUT", "1.5")
    monkeypatch.setenv("REDIS_BROWSER_SCAN_COUNT", "42")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("REDIS_BROWSER_NOTIFIER", " Toast ")

    config = AppConfig.from_env()

    assert config.data_root == tmp_path
    assert config.redis_socket_timeout == 1.5
    assert config.scan_count == 42
    assert config.log_level == "DEBUG"
    assert config.notifier == "toast"


def test_app_config_invalid_number_falls_back(monkeypatch):
    monkeypatch.setenv("REDIS_BROWSER_SCAN_COUNT", "lots")

    assert AppConfig.from_env().scan_count == 500


def test_configure_logging_accepts_level_names():
    configure_logging("warning")

    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("redis").level == logging.WARNING


def test_logging_notifier(caplog):
    notifier = LoggingNotifier()

    with caplog.at_level(logging.INFO, logger="src.shared.notifications"):
        notifier.notify(NotificationKind.SUCCESS, "Success", "Keys refreshed successfully")
        notifier.notify(NotificationKind.ERROR, "Error", "Failed to delete key: NOPERM")

    levels = [(r.levelno, r.getMessage()) for r in caplog.records]
    assert (logging.INFO, "Success: Keys refreshed successfully") in levels
    assert (logging.ERROR, "Error: Failed to delete key: NOPERM") in levels


def test_toast_notifier_shows_toast():
    pytest.importorskip("ttkbootstrap.toast")

    with patch("ttkbootstrap.toast.ToastNotification") as toast_cls:
        ToastNotifier(duration_ms=1000).notify(NotificationKind.ERROR, "Error", "boom")

    toast_cls.assert_called_once_with(title="Error", message="boom", duration=1000, bootstyle="danger")
    toast_cls.return_value.show_toast.assert_called_once()
