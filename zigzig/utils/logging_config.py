"""
Logging for the ZigZig matching service.

Every record carries the id of the HTTP request and of the job being matched
(``-`` outside of either), so one matching run can be followed from the
route through each scored candidate.
"""
import contextvars
import functools
import logging
import logging.config
import os
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

request_id_var: contextvars.ContextVar = contextvars.ContextVar("request_id", default="-")
job_id_var: contextvars.ContextVar = contextvars.ContextVar("job_id", default="-")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | req=%(request_id)s job=%(job_id)s | %(message)s"

# level, matching-run level, write files
ENVIRONMENT_PRESETS = {
    "production": ("INFO", "INFO", True),
    "development": ("DEBUG", "DEBUG", True),
    "testing": ("WARNING", "WARNING", False),
}


class ContextFilter(logging.Filter):
    """Stamps request and job ids onto records that were not given them explicitly"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        if not hasattr(record, "job_id"):
            record.job_id = job_id_var.get()
        return True


def setup_logging(level: str = "INFO", matching_level: Optional[str] = None, enable_file: bool = True) -> None:
    """
    Console logging, plus rotating service and error files under ``LOG_DIR``.

    ``matching_level`` sets the ``zigzig.matching`` loggers on their own.
    """
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "service",
            "filters": ["context"],
            "stream": "ext://sys.stdout",
        }
    }

    if enable_file:
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d")
        for name, file_level in (("file", "NOTSET"), ("error_file", "ERROR")):
            suffix = "_errors" if name == "error_file" else ""
            handlers[name] = {
                "class": "logging.handlers.RotatingFileHandler",
                "level": file_level,
                "formatter": "service",
                "filters": ["context"],
                "filename": str(log_dir / f"zigzig{suffix}_{stamp}.log"),
                "maxBytes": 10485760,  # 10MB
                "backupCount": 5,
                "encoding": "utf8",
            }

    names = list(handlers)
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"context": {"()": ContextFilter}},
        "formatters": {"service": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"}},
        "handlers": handlers,
        "loggers": {
            "": {"level": level, "handlers": names, "propagate": False},
            "zigzig.matching": {"level": matching_level or level, "propagate": True},
            "uvicorn": {"level": "INFO", "handlers": names, "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
    })

    logging.getLogger("zigzig.logging").info(
        f"Logging configured - level {level}, matching {matching_level or level}, files {enable_file}"
    )


def configure_for_environment():
    """Pick a preset from ``ENVIRONMENT``; ``LOG_LEVEL`` overrides production and unknown environments."""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level, matching_level, enable_file = ENVIRONMENT_PRESETS.get(environment, (log_level, log_level, True))
    if environment == "production":
        level = log_level
    setup_logging(level=level, matching_level=os.getenv("MATCH_LOG_LEVEL", matching_level).upper(),
                  enable_file=enable_file)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``zigzig`` namespace"""
    if name.startswith("zigzig"):
        return logging.getLogger(name)
    return logging.getLogger(f"zigzig.{name}")


def get_matching_logger(component: str) -> logging.Logger:
    """Logger for one part of a matching run (extraction, scoring, orchestration)"""
    return logging.getLogger(f"zigzig.matching.{component}")


@contextmanager
def bind_job(job_id: str):
    """Tag every record logged inside the block with ``job_id``"""
    token = job_id_var.set(job_id)
    try:
        yield
    finally:
        job_id_var.reset(token)


def log_api_call(operation: str):
    """Log start, duration and failure of a route handler"""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(f"api.{operation}")
            start_time = time.time()
            logger.info(f"{operation} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"{operation} failed after {time.time() - start_time:.3f}s: {e}")
                raise
            logger.info(f"{operation} completed in {time.time() - start_time:.3f}s")
            return result

        return wrapper
    return decorator


def log_function_call(func):
    """Debug-log how long a synchronous call took"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.time()
        try:
            return func(*args, **kwargs)
        finally:
            logger.debug(f"{func.__qualname__} took {(time.time() - start_time) * 1000:.1f}ms")

    return wrapper


class PerformanceMonitor:
    """Times a block; warns when it runs past ``threshold_ms``"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_matching_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.time() - self.start_time) * 1000
        if exc_type is not None:
            self.logger.warning(f"{self.operation_name} aborted after {self.elapsed_ms:.0f}ms: {exc_val!r}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.0f}ms (threshold {self.threshold_ms:.0f}ms)"
            )
        else:
            self.logger.debug(f"{self.operation_name} took {self.elapsed_ms:.0f}ms")
        return False
