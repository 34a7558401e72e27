"""Logging configuration for the Expense Tracker application."""

from __future__ import annotations

import logging
import sys
import time
from typing import Any

from app.core.config import LOG_LEVEL
from app.core.exceptions import ExpenseTrackerError


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Configure and return the application logger."""
    logger = logging.getLogger("expense_tracker")

    if logger.handlers:
        return logger

    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = "expense_tracker") -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class LogContext:
    """Log the outcome and duration of one repository-backed operation.

    Context fields (``user_id``, ``transaction_id``, ...) are rendered into the
    message as ``key=value`` pairs because the handler format does not print
    ``extra`` attributes. Domain errors such as a missing transaction are
    expected outcomes and are logged as warnings without a traceback.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context: Any) -> None:
        self.logger = logger
        self.operation = operation
        self.context = context
        self.started_at = 0.0

    def _describe(self) -> str:
        fields = " ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.operation} [{fields}]" if fields else self.operation

    def __enter__(self) -> "LogContext":
        self.started_at = time.perf_counter()
        self.logger.debug(f"Starting {self._describe()}", extra=self.context)
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> bool:
        elapsed_ms = (time.perf_counter() - self.started_at) * 1000
        if exc_type is None:
            self.logger.info(f"Completed {self._describe()} in {elapsed_ms:.1f}ms", extra=self.context)
        elif isinstance(exc_val, ExpenseTrackerError):
            self.logger.warning(f"Rejected {self._describe()}: {exc_val.message}", extra=self.context)
        else:
            self.logger.error(
                f"Failed {self._describe()} after {elapsed_ms:.1f}ms: {exc_val}",
                extra=self.context,
                exc_info=True,
            )
        return False


# Initialize default logger
logger = setup_logging(LOG_LEVEL)
