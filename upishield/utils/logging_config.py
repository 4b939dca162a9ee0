"""
Structured logging and in-process metrics for UPIShield.

Production logs are one JSON object per line; development logs are
human-readable. Analyzer calls are counted per outcome level.
"""

import inspect
import json
import logging
import os
import sys
import time
from collections import defaultdict, deque
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Deque, Dict, Optional

from upishield.config import settings


# Bound per HTTP request by the server middleware
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

DEV_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request id and structured context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "environment": settings.environment,
        }

        request_id = request_id_var.get()
        if request_id:
            payload["request_id"] = request_id

        context = getattr(record, "context", None)
        if context:
            payload["context"] = context

        if record.exc_info and record.exc_info[0]:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(payload, default=str)


class StructuredLogger:
    """
    Logger that takes keyword context instead of formatted strings.

        logger = StructuredLogger(__name__)
        logger.info("Transaction scored", risk_level="warning", score=0.42)
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info: bool = False, **context):
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, exc_info=exc_info, extra={"context": context})

    def info(self, message: str, **context):
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, exc_info: bool = False, **context):
        self._log(logging.ERROR, message, exc_info=exc_info, **context)


def setup_logging(level: str = "INFO", json_format: bool = True, log_file: Optional[str] = None):
    """
    Replace the root handlers with a stdout handler and, optionally, a JSON
    file handler. The log file's directory is created when missing.
    """
    numeric_level = getattr(logging, level.upper())
    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JSONFormatter() if json_format else logging.Formatter(DEV_FORMAT))
    root.addHandler(console)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def init_logging():
    """Configure logging from settings: JSON in prod, readable text in dev."""
    is_prod = settings.is_production
    setup_logging(
        level=settings.log_level or ("INFO" if is_prod else "DEBUG"),
        json_format=is_prod,
        log_file=settings.log_file,
    )


# ============== METRICS ==============


class MetricsCollector:
    """Counters and latency samples kept in process, exposed on /admin/metrics."""

    MAX_SAMPLES = 1000

    def __init__(self):
        self._counters: Dict[str, int] = defaultdict(int)
        self._timings: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=self.MAX_SAMPLES))
        self._start_time = time.time()

    def increment(self, name: str, value: int = 1):
        self._counters[name] += value

    def timing(self, name: str, seconds: float):
        self._timings[name].append(seconds)

    def get_stats(self) -> Dict[str, Any]:
        timings = {
            name: {
                "count": len(samples),
                "avg": sum(samples) / len(samples),
                "max": max(samples),
            }
            for name, samples in self._timings.items()
            if samples
        }
        return {
            "uptime_seconds": time.time() - self._start_time,
            "counters": dict(self._counters),
            "timings": timings,
        }

    def reset(self):
        self._counters.clear()
        self._timings.clear()


metrics = MetricsCollector()


def _level_of(result: Any, level_field: str) -> str:
    value = result.get(level_field) if isinstance(result, dict) else getattr(result, level_field, None)
    return str(value or "unknown").lower()


def track_analysis(modality: str, level_field: str = "risk_level"):
    """
    Count calls, errors and outcome levels of an analyzer, and time it.

    Works on both plain functions and coroutines.
    """
    prefix = f"analysis.{modality}"

    def record(result, started: float):
        metrics.timing(f"{prefix}.latency", time.time() - started)
        metrics.increment(f"{prefix}.risk.{_level_of(result, level_field)}")

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                metrics.increment(f"{prefix}.total")
                started = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    metrics.increment(f"{prefix}.errors")
                    raise
                record(result, started)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            metrics.increment(f"{prefix}.total")
            started = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception:
                metrics.increment(f"{prefix}.errors")
                raise
            record(result, started)
            return result
        return sync_wrapper

    return decorator
