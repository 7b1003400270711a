"""Tests for pkgauth.log module."""

from __future__ import annotations

import logging

import pytest

from pkgauth import log
from pkgauth.log import (
    configure,
    enable_debug,
    get_logger,
    redact_command,
    redact_params,
    set_level,
)


@pytest.fixture(autouse=True)
def restore_logger_level():
    """Put the pkgauth logger back the way the test found it."""
    logger = logging.getLogger("pkgauth")
    level = logger.level
    formatters = [h.formatter for h in logger.handlers]
    yield
    logger.setLevel(level)
    for handler, formatter in zip(logger.handlers, formatters):
        handler.setFormatter(formatter)


class TestGetLogger:
    """Tests for the shared logger."""

    def test_returns_pkgauth_logger(self) -> None:
        assert get_logger().name == "pkgauth"

    def test_same_instance(self) -> None:
        assert get_logger() is get_logger()

    def test_single_handler(self) -> None:
        get_logger()
        get_logger()
        assert len(logging.getLogger("pkgauth").handlers) == 1

    def test_children_propagate_to_it(self) -> None:
        child = logging.getLogger("pkgauth.auth")
        assert child.parent is get_logger()


class TestLevels:
    """Tests for level and format configuration."""

    def test_set_level_by_name(self) -> None:
        set_level("error")
        assert get_logger().level == logging.ERROR

    def test_set_level_by_number(self) -> None:
        set_level(logging.INFO)
        assert get_logger().level == logging.INFO

    def test_enable_debug(self) -> None:
        enable_debug()
        assert get_logger().level == logging.DEBUG

    def test_configure_sets_format(self) -> None:
        logger = configure("INFO", "%(levelname)s: %(message)s")
        assert logger.level == logging.INFO
        assert logger.handlers[0].formatter._fmt == "%(levelname)s: %(message)s"

    def test_default_format_names_logger(self) -> None:
        assert "%(name)s" in log.DEFAULT_FORMAT


class TestRedactParams:
    """Tests for query/form parameter redaction."""

    def test_redacts_sensitive_keys(self) -> None:
        params = {"code": "abc", "state": "xyz", "client_secret": "s", "access_token": "t"}
        assert redact_params(params) == {
            "code": "[REDACTED]",
            "state": "xyz",
            "client_secret": "[REDACTED]",
            "access_token": "[REDACTED]",
        }

    def test_case_insensitive(self) -> None:
        assert redact_params({"Password": "p"}) == {"Password": "[REDACTED]"}

    def test_keeps_provider_error(self) -> None:
        params = {"error": "access_denied", "error_description": "The user has denied your application"}
        assert redact_params(params) == params

    def test_does_not_mutate_input(self) -> None:
        params = {"code": "abc"}
        redact_params(params)
        assert params == {"code": "abc"}


class TestRedactCommand:
    """Tests for command-line masking."""

    def test_masks_secret_inside_argument(self) -> None:
        argv = ["npm", "config", "set", "//npm.pkg.github.com/:_authToken=gho_abc"]
        assert redact_command(argv, ["gho_abc"]) == [
            "npm",
            "config",
            "set",
            "//npm.pkg.github.com/:_authToken=***",
        ]

    def test_masks_standalone_argument(self) -> None:
        assert redact_command(["--password", "gho_abc"], ["gho_abc"]) == ["--password", "***"]

    def test_ignores_empty_secret(self) -> None:
        assert redact_command(["docker", "login"], [""]) == ["docker", "login"]

    def test_returns_copy(self) -> None:
        argv = ["x", "gho_abc"]
        redact_command(argv, ["gho_abc"])
        assert argv == ["x", "gho_abc"]
