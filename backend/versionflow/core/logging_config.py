"""
Structured logging for versionflow.

Production emits one JSON object per line; development gets a colored
single-line format. Versioning context bound through ``get_logger(...).bind``
(repository, branch, environment, version) is lifted into its own block so
log queries can filter on it directly.
"""

import json
import logging
import sys
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from versionflow.core.config import settings

# Context keys promoted to the "versioning" block of JSON lines
VERSIONING_KEYS = (
    "repository_id",
    "branch",
    "environment",
    "version_id",
    "parent_version_id",
    "pr_number",
)

_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregators."""

    def __init__(self, service_name: str = "versionflow"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        extras = _record_extras(record)
        versioning = {key: extras.pop(key) for key in VERSIONING_KEYS if key in extras}

        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": settings.ENVIRONMENT,
            "location": f"{record.module}:{record.lineno}",
        }
        if "request_id" in extras:
            log_data["request_id"] = extras.pop("request_id")
        if versioning:
            log_data["versioning"] = versioning
        if extras:
            log_data["extra"] = extras

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Console format for development: level color plus a [repository@branch] tag."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        clock = time.strftime("%H:%M:%S", time.localtime(record.created))

        tag = ""
        repository_id = getattr(record, "repository_id", None)
        if repository_id:
            branch = getattr(record, "branch", None)
            tag = f" [{repository_id}@{branch}]" if branch else f" [{repository_id}]"

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}{tag}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            last = traceback.format_exception(*record.exc_info)[-1].strip()
            line += f"\n{color}  {last}{self.RESET}"
        return line


class ContextLogger:
    """
    Wraps a stdlib logger with immutable bound context.

    ``bind`` returns a new wrapper; the original keeps its own context, so a
    module-level logger can be specialised per repository inside a handler.
    """

    def __init__(self, logger: logging.Logger, context: Optional[dict[str, Any]] = None):
        self._logger = logger
        self._context: dict[str, Any] = dict(context or {})

    def bind(self, **kwargs) -> "ContextLogger":
        return ContextLogger(self._logger, {**self._context, **kwargs})

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def log(self, level: int, msg: str, *args, **kwargs) -> None:
        extra = {**self._context, **kwargs.pop("extra", {})}
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)


def setup_logging(
    service_name: str = "versionflow",
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        service_name: Value of the ``service`` field in JSON lines
        log_level: Override level name; defaults to DEBUG when settings.DEBUG is set
        json_logs: Override the format; defaults to JSON in production only
    """
    level = (log_level or ("DEBUG" if settings.DEBUG else "INFO")).upper()
    if json_logs is None:
        json_logs = settings.ENVIRONMENT.lower() == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service_name) if json_logs else ColoredFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("versionflow.logging").info(
        f"Logging configured: level={level}, format={'JSON' if json_logs else 'colored'}, "
        f"environment={settings.ENVIRONMENT}"
    )


def get_logger(name: str) -> ContextLogger:
    """
    Usage:
        logger = get_logger("versionflow.versioning")
        log = logger.bind(repository_id="repo-1", branch="dev")
        log.info("Version computed")
    """
    return ContextLogger(logging.getLogger(name))


class RequestLoggingMiddleware:
    """
    ASGI middleware logging one line per request.

    The request id is GitHub's delivery id when the request is a webhook
    delivery, so a log line can be matched to the delivery in GitHub's UI.
    """

    SKIP_PATHS = ("/health", "/metrics")

    def __init__(self, app):
        self.app = app
        self.logger = get_logger("versionflow.http")

    @staticmethod
    def _request_id(scope) -> str:
        for name, value in scope.get("headers", []):
            if name == b"x-github-delivery":
                return value.decode("latin-1")
        return uuid.uuid4().hex[:8]

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._request_id(scope)
        scope.setdefault("state", {})["request_id"] = request_id
        started = time.perf_counter()
        response_status = 500

        async def send_wrapper(message):
            nonlocal response_status
            if message["type"] == "http.response.start":
                response_status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            path = scope.get("path", "/")
            if path not in self.SKIP_PATHS:
                duration_ms = (time.perf_counter() - started) * 1000
                method = scope.get("method", "UNKNOWN")
                self.logger.log(
                    logging.WARNING if response_status >= 400 else logging.INFO,
                    f"{method} {path} {response_status} {duration_ms:.1f}ms",
                    extra={
                        "request_id": request_id,
                        "method": method,
                        "path": path,
                        "status": response_status,
                        "duration_ms": round(duration_ms, 1),
                    },
                )
