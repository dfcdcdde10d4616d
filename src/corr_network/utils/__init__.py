"""Utility helpers."""

from .logging import setup_logging, LogContext, ProgressLogger

__all__ = [
    "setup_logging",
    "LogContext",
    "ProgressLogger",
]
