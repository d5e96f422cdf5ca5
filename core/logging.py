"""
Structured logging configuration

JSON lines in deployed environments, plain text for local runs. Render
context bound with ``get_logger(...).with_context(...)`` (domain, job,
design, data set, data source) travels with every record: as top-level
fields in JSON and as a trailing ``[key=value]`` block in text.
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from core.config import settings

CONTEXT_FIELDS = ("domain", "job_id", "design", "data_set", "data_source")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Render context attached to a record, in a stable order"""
    context = {}
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            context[name] = value
    return context


class ReportJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record, with the render context as top-level fields"""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["app"] = settings.app_name
        log_record["environment"] = settings.environment
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        for name in CONTEXT_FIELDS:
            if log_record.get(name) is None:
                log_record.pop(name, None)
        log_record.update(record_context(record))

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class ContextTextFormatter(logging.Formatter):
    """Plain text lines ending in the record's render context"""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        pairs = " ".join(f"{name}={value}" for name, value in context.items())
        first, newline, rest = line.partition("\n")
        return f"{first} [{pairs}]{newline}{rest}"


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return ReportJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    return ContextTextFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure the root logger from settings, or from explicit overrides"""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.log_level).upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(build_formatter(log_format or settings.log_format))
    root_logger.addHandler(console_handler)

    # SQL echo only while debugging; pool chatter never
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.debug else logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter binding render context to every record"""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        # call-site extra wins over bound context
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def with_context(self, **context) -> "LoggerAdapter":
        """A logger with additional bound context"""
        return LoggerAdapter(self.logger, {**self.extra, **context})


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger instance with optional context

    Example:
        logger = get_logger(__name__, domain="d4_jobs")
        logger.with_context(job_id=job.job_id, design=design.name).info("Render job completed")
    """
    return LoggerAdapter(logging.getLogger(name), context)


# Initialize logging on import
setup_logging()
