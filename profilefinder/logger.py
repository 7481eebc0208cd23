"""
Structured logging for profilefinder.

Provides centralized logging with console and file outputs and tracks
resolution metrics (search calls, cache efficiency, outcomes by status) so a
batch run can report how much of its search quota it spent.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring resolution runs.
    """

    def __init__(
        self,
        name: str = "profilefinder",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if enable_file else getattr(logging, level.upper()))
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = {
            "search_calls": 0,
            "search_failures": 0,
            "errors_by_type": {},
            "cache_hits": 0,
            "cache_misses": 0,
            "resolutions_by_status": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"profilefinder_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message, stacklevel=3)

    # Metric tracking methods

    def record_search_call(self):
        """Increment search API call counter."""
        self.metrics["search_calls"] += 1

    def record_search_failure(self, error_type: str):
        """Record a failed search call by error type."""
        self.metrics["search_failures"] += 1
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def record_cache_lookup(self, hit: bool):
        if hit:
            self.metrics["cache_hits"] += 1
        else:
            self.metrics["cache_misses"] += 1

    def record_resolution(self, status: str):
        """Count a finished resolution under its status."""
        by_status = self.metrics["resolutions_by_status"]
        by_status[status] = by_status.get(status, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics with derived rates."""
        metrics_copy = json.loads(json.dumps(self.metrics))
        lookups = metrics_copy["cache_hits"] + metrics_copy["cache_misses"]
        metrics_copy["cache_hit_rate"] = round(metrics_copy["cache_hits"] / lookups, 3) if lookups else 0.0
        metrics_copy["resolutions"] = sum(metrics_copy["resolutions_by_status"].values())
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Resolution Session Metrics ===")
        self.info(f"Search calls: {metrics['search_calls']} ({metrics['search_failures']} failed)")
        self.info(
            f"Cache: {metrics['cache_hits']} hits / {metrics['cache_misses']} misses "
            f"({metrics['cache_hit_rate'] * 100:.1f}% hit rate)"
        )

        if metrics["resolutions_by_status"]:
            self.info(f"Resolutions: {metrics['resolutions']}")
            for status, count in sorted(metrics["resolutions_by_status"].items()):
                self.info(f"  {status}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "profilefinder",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
