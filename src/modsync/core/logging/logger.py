"""
Structured logger used throughout modsync.

Messages carry an optional ``data`` mapping with structured context. The
mapping is rendered after the message so console and file output stay
readable without a JSON viewer.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.logging import RichHandler

from modsync.ui.console import error_console

if TYPE_CHECKING:
    from collections.abc import Mapping

    from modsync.config import LoggerSettings

ROOT_LOGGER_NAME = "modsync"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _format_data(data: Mapping[str, Any] | None) -> str:
    if not data:
        return ""
    try:
        return " " + json.dumps(data, ensure_ascii=True, default=str, sort_keys=True)
    except TypeError:
        return f" {data!r}"


class Logger:
    """Thin wrapper over :mod:`logging` that accepts a ``data`` context mapping."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        message: str,
        data: Mapping[str, Any] | None,
        exc_info: bool = False,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(level, "%s%s", message, _format_data(data), exc_info=exc_info)

    def debug(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log(logging.DEBUG, message, data)

    def info(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log(logging.INFO, message, data)

    def warning(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log(logging.WARNING, message, data)

    def error(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log(logging.ERROR, message, data)

    def exception(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log(logging.ERROR, message, data, exc_info=True)


_loggers: dict[str, Logger] = {}


def get_logger(name: str) -> Logger:
    logger = _loggers.get(name)
    if logger is None:
        logger = Logger(name)
        _loggers[name] = logger
    return logger


def configure_logging(settings: LoggerSettings) -> None:
    """Install handlers on the ``modsync`` root logger according to settings."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.propagate = False
    if settings.type == "none":
        root.addHandler(logging.NullHandler())
        root.setLevel(logging.CRITICAL + 1)
        return

    root.setLevel(_LEVELS[settings.level])
    if settings.type == "file":
        path = Path(settings.path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = RichHandler(console=error_console, show_path=False, markup=False)
    root.addHandler(handler)
