"""Structured logging utilities."""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from pathlib import Path

from loguru import logger as _logger

from .sensitive_filter import sanitize_record

_FMT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<lvl>{level:<8}</lvl> | "
    "<magenta>{extra[correlation_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<lvl>{message}</lvl>"
)

# Common Log Format lines are pre-rendered by the request logger.
_ACCESS_FMT = "{message}"

_CORRELATION_ID: ContextVar[str] = ContextVar("correlation_id", default="-")


def _default_log_dir() -> Path:
    root = Path.cwd() / "log"
    root.mkdir(parents=True, exist_ok=True)
    return root


def _is_access(record: dict) -> bool:
    return bool(record["extra"].get("access"))


def _app_filter(record: dict) -> bool:
    if _is_access(record):
        return False
    return sanitize_record(record)


def _access_filter(record: dict) -> bool:
    if not _is_access(record):
        return False
    return sanitize_record(record)


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)
        _logger.opt(depth=6, exception=record.exc_info).log(
            level,
            record.getMessage(),
            correlation_id=_CORRELATION_ID.get(),
        )


class ContextualLogger:
    """Proxy for loguru that injects correlation ids via ContextVar."""

    def __getattr__(self, name):  # pragma: no cover
        bound = _logger.bind(correlation_id=_CORRELATION_ID.get())
        return getattr(bound, name)


def set_correlation_id(value: str | None) -> None:
    _CORRELATION_ID.set(value or "-")


def get_correlation_id() -> str:
    return _CORRELATION_ID.get()


def clear_correlation_id() -> None:
    _CORRELATION_ID.set("-")


def sid_prefix(session_id: str | None) -> str:
    """Loggable handle for a session id; never the full credential."""
    if not session_id:
        return "-"
    return f"{session_id[:8]}…"


def log_access(line: str) -> None:
    _logger.bind(correlation_id=_CORRELATION_ID.get(), access=True).info(line)


def setup_logging(
    level: str | None = None,
    *,
    log_file: str | os.PathLike[str] | None = None,
    access_log_file: str | os.PathLike[str] | None = None,
) -> None:
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    log_dir = None
    if log_file is None or access_log_file is None:
        log_dir = _default_log_dir()
    app_log = Path(log_file) if log_file else log_dir / "gateway.log"
    access_log = Path(access_log_file) if access_log_file else log_dir / "access.log"
    app_log.parent.mkdir(parents=True, exist_ok=True)
    access_log.parent.mkdir(parents=True, exist_ok=True)

    _logger.remove()
    _logger.configure(extra={"correlation_id": "-"})
    _logger.add(
        sys.stderr,
        level=level,
        format=_FMT,
        filter=_app_filter,
        colorize=True,
        backtrace=False,
        diagnose=False,
    )
    _logger.add(
        str(app_log),
        level=level,
        format=_FMT,
        filter=_app_filter,
        colorize=False,
        backtrace=False,
        diagnose=False,
        enqueue=True,
        encoding="utf-8",
    )
    _logger.add(
        str(access_log),
        level="INFO",
        format=_ACCESS_FMT,
        filter=_access_filter,
        colorize=False,
        enqueue=True,
        encoding="utf-8",
    )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


logger = ContextualLogger()

__all__ = [
    "clear_correlation_id",
    "get_correlation_id",
    "log_access",
    "logger",
    "set_correlation_id",
    "setup_logging",
    "sid_prefix",
]
