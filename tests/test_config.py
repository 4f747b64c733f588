# ruff: noqa: E402, I001
import logging
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

import staging_review.logging_setup as logging_setup
from staging_review.config import DEFAULT_BASE_URL, ReviewSettings, load_settings


def test_defaults():
    settings = load_settings()
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.default_account == "Expenses:"
    assert settings.blur_close_delay == pytest.approx(0.2)
    assert settings.endpoint("init") == "http://127.0.0.1:8472/api/init"


def test_environment_then_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STAGING_REVIEW_URL", "http://env.test:9000/api/")
    monkeypatch.setenv("STAGING_REVIEW_TIMEOUT", "2.5")
    monkeypatch.setenv("STAGING_REVIEW_DEFAULT_ACCOUNT", "")

    settings = load_settings()
    assert settings.base_url == "http://env.test:9000/api"
    assert settings.request_timeout == 2.5
    assert settings.default_account == "Expenses:"

    settings = load_settings(base_url="https://cli.test/api", request_timeout=None)
    assert settings.base_url == "https://cli.test/api"
    assert settings.request_timeout == 2.5


def test_invalid_values_name_the_variable(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STAGING_REVIEW_RECONNECT_DELAY", "-1")
    with pytest.raises(ValueError, match="STAGING_REVIEW_RECONNECT_DELAY"):
        load_settings()


def test_base_url_scheme_is_required():
    with pytest.raises(ValueError, match="STAGING_REVIEW_URL"):
        load_settings(base_url="localhost:8472")


def test_endpoint_joins_without_double_slash():
    settings = ReviewSettings(base_url="http://x.test/api/")
    assert settings.endpoint("/transaction/1") == "http://x.test/api/transaction/1"


def test_configure_logging_writes_to_file_once(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    pkg_logger = logging.getLogger("staging_review")
    monkeypatch.setattr(pkg_logger, "handlers", [])
    monkeypatch.setattr(pkg_logger, "level", pkg_logger.level)
    monkeypatch.setattr(pkg_logger, "propagate", pkg_logger.propagate)

    log_file = tmp_path / "review.log"
    logging_setup.configure_logging("debug", log_file=log_file)
    logging_setup.configure_logging("error")

    assert len(pkg_logger.handlers) == 1
    assert pkg_logger.level == logging.DEBUG
    logging_setup.get_logger("staging_review.test").debug("hello file")
    pkg_logger.handlers[0].flush()
    assert "hello file" in log_file.read_text(encoding="utf-8")
    pkg_logger.handlers[0].close()


def test_log_level_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STAGING_REVIEW_LOG_LEVEL", "warning")
    assert logging_setup._parse_level(None) == logging.WARNING
    assert logging_setup._parse_level("15") == 15
    assert logging_setup._parse_level("bogus") == logging.INFO
