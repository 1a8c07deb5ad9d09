"""
Logging setup for the Resume Matcher API.

`configure_for_environment()` is called once by `app.main`; modules get their
logger through `get_logger(__name__)`, which namespaces it under
`resume_matcher.`.
"""
import functools
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(funcName)-22s:%(lineno)-4d | %(message)s",
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
            '"function": "%(funcName)s", "line": %(lineno)d, "message": "%(message)s"}',
}

# Third-party loggers and the level they are held at
LIBRARY_LOGGERS = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "pymongo": "WARNING",
    "pdfminer": "ERROR",
}

ENVIRONMENT_PROFILES = {
    "production": {"enable_file": True, "format_style": "detailed"},
    "development": {"level": "DEBUG", "enable_file": True, "format_style": "detailed"},
    "testing": {"level": "WARNING", "enable_file": False, "format_style": "simple"},
}

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def _rotating_handler(filename: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(filename),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUPS,
        "encoding": "utf8",
    }


def build_logging_config(
    level: str = "INFO",
    log_dir: Path = Path("logs"),
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed",
) -> Dict[str, Any]:
    """
    dictConfig schema for the service.

    Application records go to the root logger. Library loggers get their own
    level and the console handler, and only uvicorn also writes to the log file.
    File handlers rotate daily-named files under `log_dir`; ERROR and above are
    duplicated into a separate errors file.
    """
    stamp = datetime.now().strftime("%Y%m%d")
    handlers: Dict[str, Any] = {}
    root_handlers = []

    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "simple" if format_style == "simple" else "detailed",
            "stream": "ext://sys.stdout",
        }
        root_handlers.append("console")

    if enable_file:
        handlers["file"] = _rotating_handler(log_dir / f"resume_matcher_{stamp}.log", level)
        handlers["error_file"] = _rotating_handler(log_dir / f"resume_matcher_errors_{stamp}.log", "ERROR")
        root_handlers += ["file", "error_file"]

    loggers: Dict[str, Any] = {"": {"level": level, "handlers": root_handlers, "propagate": False}}
    for name, lib_level in LIBRARY_LOGGERS.items():
        lib_handlers = ["console"] if enable_console else []
        if enable_file and name == "uvicorn":
            lib_handlers.append("file")
        loggers[name] = {"level": lib_level, "handlers": lib_handlers, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {"format": FORMATS.get(format_style, FORMATS["detailed"]), "datefmt": "%Y-%m-%d %H:%M:%S"},
            "simple": {"format": FORMATS["simple"]},
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging(level: str = "INFO", enable_console: bool = True, enable_file: bool = True,
                  format_style: str = "detailed") -> None:
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    if enable_file:
        log_dir.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(level, log_dir, enable_console, enable_file, format_style))
    get_logger("logging").info(
        f"Logging configured - Level: {level}, Console: {enable_console}, File: {enable_file} ({log_dir})"
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"resume_matcher.{name}")


def configure_for_environment(environment: Optional[str] = None) -> None:
    """Apply the logging profile for ENVIRONMENT (production, development, testing)."""
    environment = (environment or os.getenv("ENVIRONMENT", "development")).lower()
    profile = {"level": os.getenv("LOG_LEVEL", "INFO").upper(), **ENVIRONMENT_PROFILES.get(environment, {})}
    setup_logging(**profile)


def log_api_call(operation: str):
    """Log start, duration and failure of an async route handler."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(f"api.{func.__module__}")
            started = time.perf_counter()
            logger.info(f"API {operation} started - {func.__name__}")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                logger.error(f"API {operation} failed after {elapsed:.3f}s: {e}",
                             extra={"execution_time": elapsed, "error": str(e)})
                raise
            elapsed = time.perf_counter() - started
            logger.info(f"API {operation} completed in {elapsed:.3f}s", extra={"execution_time": elapsed})
            return result

        return wrapper
    return decorator


class PerformanceMonitor:
    """Times a block and logs it, at WARNING when it runs past `threshold_ms`."""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms: Optional[float] = None
        self._started = 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} took {self.elapsed_ms:.2f}ms "
                                f"(threshold {self.threshold_ms}ms)")
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        return False
