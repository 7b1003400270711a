"""Logging utilities for pkgauth.

Every module logs through a child of the ``pkgauth`` logger; this module
owns the single stderr handler attached to it.
"""

from __future__ import annotations

import logging
import sys

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


DEFAULT_FORMAT = "%(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "pkgauth"

REDACTED = "[REDACTED]"

# Substrings of parameter names whose values never reach a log record
_SENSITIVE_KEYS = ("secret", "password", "token", "code", "credential", "auth")

_handler: logging.Handler | None = None


def get_logger() -> logging.Logger:
    """Return the ``pkgauth`` logger, attaching its stderr handler once.

    Returns
    -------
    logging.Logger
        The package logger. Defaults to WARNING until configured.
    """
    global _handler  # noqa: PLW0603
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        logger.addHandler(_handler)
        if logger.level == logging.NOTSET:
            logger.setLevel(logging.WARNING)
    return logger


def configure(level: int | str = "WARNING", fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Apply level and format to the pkgauth logger.

    Parameters
    ----------
    level : int or str
        A level number or name (``"INFO"``, ``"debug"``...).
    fmt : str
        A ``logging.Formatter`` format string.

    Returns
    -------
    logging.Logger
        The configured pkgauth logger.
    """
    logger = get_logger()
    set_level(level)
    if _handler is not None:
        _handler.setFormatter(logging.Formatter(fmt))
    return logger


def set_level(level: int | str) -> None:
    """Set the pkgauth logger's level by number or name."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    get_logger().setLevel(level)


def enable_debug() -> None:
    """Log listener traffic, authorize URLs and (masked) setter commands."""
    set_level(logging.DEBUG)


def _is_sensitive(key: object) -> bool:
    name = str(key).lower()
    return any(part in name for part in _SENSITIVE_KEYS)


def redact_params(params: Mapping[str, object]) -> dict[str, object]:
    """Copy a flat parameter mapping with sensitive values masked.

    Used before logging query strings and form bodies, where the
    authorization code or client secret may appear.

    Parameters
    ----------
    params : Mapping[str, object]
        Query or form parameters.

    Returns
    -------
    dict[str, object]
        A new dict; values under names containing ``code``, ``token``,
        ``secret`` and the like are replaced with ``"[REDACTED]"``.
    """
    return {key: REDACTED if _is_sensitive(key) else value for key, value in params.items()}


def redact_command(argv: Iterable[str], secrets_: Iterable[str]) -> list[str]:
    """Return ``argv`` with every occurrence of each secret replaced by ``***``."""
    hidden = [s for s in secrets_ if s]
    masked = []
    for arg in argv:
        for secret in hidden:
            arg = arg.replace(secret, "***")
        masked.append(arg)
    return masked
