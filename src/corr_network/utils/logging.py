"""
Logging helpers for corr_network.

Handlers are attached to the ``corr_network`` logger tree only, so
embedding applications keep control of the root logger.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional


CONSOLE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
QUIET_FORMAT = '[%(levelname)s] %(message)s'
FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s'

PACKAGE_LOGGER = 'corr_network'


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    detailed: bool = False,
    quiet: bool = False,
) -> logging.Logger:
    """
    Configure console (and optional file) output for the package loggers.

    Args:
        level: Console level; forced to WARNING when quiet
        log_file: Optional file receiving every record at DEBUG level
        detailed: Add file/line information to console records
        quiet: Warnings and errors only, short format

    Returns:
        The package logger
    """
    if quiet:
        level = logging.WARNING
        fmt = QUIET_FORMAT
    else:
        fmt = FILE_FORMAT if detailed else CONSOLE_FORMAT

    pkg = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(pkg.handlers):
        pkg.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(fmt))
    console.setLevel(level)
    pkg.addHandler(console)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(log_file, encoding='utf-8')
        to_file.setFormatter(logging.Formatter(FILE_FORMAT))
        to_file.setLevel(logging.DEBUG)
        pkg.addHandler(to_file)

    pkg.setLevel(logging.DEBUG if log_file else level)
    pkg.propagate = False
    return pkg


class LogContext:
    """
    Times a pipeline stage.

    Example:
        with LogContext(logger, "Rolling PMFG network (12 windows)"):
            driver.run_network(returns)
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self._start = 0.0

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._start

    def __enter__(self) -> 'LogContext':
        self._start = time.perf_counter()
        self.logger.log(self.level, f"{self.operation}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            self.logger.log(self.level, f"{self.operation} done in {self.elapsed:.2f}s")
        else:
            self.logger.error(f"{self.operation} failed after {self.elapsed:.2f}s: {exc_val}")
        return False


class ProgressLogger:
    """Counts finished windows or resamples and logs every ``every`` items at DEBUG."""

    def __init__(self, logger: logging.Logger, total: int, description: str = "Processing", every: int = 10):
        self.logger = logger
        self.total = total
        self.description = description
        self.every = max(1, every)
        self.done = 0

    def update(self, done: int) -> None:
        self.done = done
        if done % self.every and done != self.total:
            return
        share = 100.0 * done / self.total if self.total else 100.0
        self.logger.debug(f"{self.description}: {done}/{self.total} ({share:.0f}%)")
