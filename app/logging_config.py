"""JSON logging configuration for the EasySystem bridge."""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Optional


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "correlation_id") and record.correlation_id:
            log_data["correlation_id"] = record.correlation_id

        if hasattr(record, "context") and record.context:
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure JSON logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(f"easysystem.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds context to log records."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        correlation_id = kwargs.pop("correlation_id", None)
        extra = {}
        if context or self.extra:
            extra["context"] = {**self.extra, **(context or {})}
        if correlation_id:
            extra["correlation_id"] = correlation_id
        if extra:
            kwargs["extra"] = extra
        return msg, kwargs


class EventLogger:
    """Leveled event logger: every entry is an event code plus structured fields.

    API call helpers never log request bodies in full, only their keys, since
    they carry customer identifiers.
    """

    def __init__(self, name: str, **static_fields: Any):
        self._log = LoggerAdapter(get_logger(name), static_fields)

    @staticmethod
    def generate_correlation_id() -> str:
        return str(uuid.uuid4())

    def info(self, code: str, fields: Optional[dict] = None, correlation_id: Optional[str] = None) -> None:
        self._log.info(code, context=fields, correlation_id=correlation_id)

    def warn(self, code: str, fields: Optional[dict] = None, correlation_id: Optional[str] = None) -> None:
        self._log.warning(code, context=fields, correlation_id=correlation_id)

    def error(self, code: str, fields: Optional[dict] = None, correlation_id: Optional[str] = None) -> None:
        self._log.error(code, context=fields, correlation_id=correlation_id)

    def log_api_call_start(self, url: str, body: Optional[dict], correlation_id: Optional[str] = None) -> None:
        self._log.debug(
            "API_CALL_START",
            context={"url": url, "body_keys": sorted((body or {}).keys())},
            correlation_id=correlation_id,
        )

    def log_api_call_complete(self, url: str, status_code: Optional[int], correlation_id: Optional[str] = None) -> None:
        self._log.info(
            "API_CALL_COMPLETE",
            context={"url": url, "status_code": status_code},
            correlation_id=correlation_id,
        )

    def log_api_call_error(self, url: str, error: BaseException, correlation_id: Optional[str] = None) -> None:
        self._log.error(
            "API_CALL_ERROR",
            context={"url": url, "error": str(error), "error_type": type(error).__name__},
            correlation_id=correlation_id,
        )
