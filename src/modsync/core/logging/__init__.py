"""Logging helpers for modsync."""

from .logger import Logger, configure_logging, get_logger
from .progress_payloads import build_progress_payload

__all__ = [
    "Logger",
    "build_progress_payload",
    "configure_logging",
    "get_logger",
]
