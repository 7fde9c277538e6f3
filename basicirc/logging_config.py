"""
Root logging setup and structured error reporting.

``LoggerConfigurator`` installs a colorlog handler on the root logger; every
``ClientLogger`` event and every ``log_structured_error`` call ends up there.
Errors are also counted per category by ``error_aggregator`` and summarised
when the process exits.
"""

import atexit
import logging
import os
import sys
import threading
import time
from collections import deque
from typing import Any

import colorlog

LOG_FORMAT = (
    "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s "
    "%(message_log_color)s%(message)s"
)
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "magenta",
}
# Error and critical lines get their message body colored too
MESSAGE_COLORS = {"message": {"ERROR": "red", "CRITICAL": "magenta"}}

MAX_ERRORS_PER_CATEGORY = 100


def debug_enabled() -> bool:
    """True when the ``DEBUG`` environment variable asks for verbose logs."""
    return os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")


class ErrorAggregator:
    """Per-category error history for the shutdown summary.

    Only the most recent ``MAX_ERRORS_PER_CATEGORY`` entries of a category
    are kept. Safe to call from any thread.
    """

    def __init__(self) -> None:
        self.errors: dict[str, deque[dict[str, Any]]] = {}
        self.lock = threading.Lock()
        self.start_time = time.time()

    def record_error(
        self, error_type: str, message: str, context: dict[str, Any] | None = None
    ) -> None:
        entry = {"timestamp": time.time(), "message": message, "context": context or {}}
        with self.lock:
            history = self.errors.setdefault(
                error_type, deque(maxlen=MAX_ERRORS_PER_CATEGORY)
            )
            history.append(entry)

    def get_error_summary(self) -> dict[str, Any]:
        """Return ``{category: {"total_count": n, "last_occurrence": entry}}``."""
        with self.lock:
            return {
                error_type: {
                    "total_count": len(history),
                    "last_occurrence": history[-1] if history else None,
                }
                for error_type, history in self.errors.items()
            }

    def clear(self) -> None:
        with self.lock:
            self.errors.clear()

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            logging.info("No errors recorded in current session")
            return

        uptime = time.time() - self.start_time
        logging.warning(f"🚨 ERROR SUMMARY REPORT ({uptime:.0f}s uptime)")
        for error_type, stats in sorted(summary.items()):
            logging.warning(f"  {error_type}: {stats['total_count']} total")
            last = stats["last_occurrence"]
            if last:
                logging.warning(f"    Last: {last['message']}")


error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log ``[CATEGORY] message | Exception: ... | Context: k=v`` and count it.

    Args:
        error_type: Category used for aggregation (network, handshake, config...).
        message: What failed.
        exception: The exception behind the failure, if any.
        context: Extra key/value pairs such as the handshake step or endpoint.
        level: Logging level, ERROR unless the caller says otherwise.
    """
    parts = [f"[{error_type.upper()}] {message}"]
    if exception is not None:
        parts.append(f"Exception: {type(exception).__name__}: {exception}")
    if context:
        parts.append("Context: " + " | ".join(f"{k}={v}" for k, v in context.items()))
    logging.log(level, " | ".join(parts))
    error_aggregator.record_error(error_type, message, context)


class LoggerConfigurator:
    """Installs the colored stderr handler on the root logger.

    ``configure`` may run more than once (tests do); the handler it added
    last time is replaced and the exit summary is only registered once.
    """

    _summary_registered = False

    def __init__(self, stream=None):
        self.stream = stream or sys.stderr
        self.handler: logging.Handler | None = None

    def build_formatter(self) -> colorlog.ColoredFormatter:
        return colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            log_colors=LOG_COLORS,
            secondary_log_colors=MESSAGE_COLORS,
            reset=True,
        )

    def configure(self) -> colorlog.ColoredFormatter:
        """Configure the root logger; DEBUG level when ``DEBUG`` is set, else INFO.

        Returns:
            The formatter attached to the root handlers.
        """
        level = logging.DEBUG if debug_enabled() else logging.INFO
        formatter = self.build_formatter()

        root = logging.getLogger()
        for existing in list(root.handlers):
            if getattr(existing, "_basicirc_handler", False):
                root.removeHandler(existing)

        handler = logging.StreamHandler(self.stream)
        handler._basicirc_handler = True
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(level)
        self.handler = handler

        if not LoggerConfigurator._summary_registered:
            atexit.register(self._log_final_error_summary)
            LoggerConfigurator._summary_registered = True
        return formatter

    def _log_final_error_summary(self) -> None:
        try:
            logging.info("📊 Final error summary before shutdown:")
            error_aggregator.log_summary_report()
        except Exception as e:  # noqa: BLE001
            logging.error(f"Failed to log final error summary: {e}")
