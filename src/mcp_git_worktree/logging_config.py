import json
import logging
import sys
from typing import Optional, TextIO

# stdout carries the protocol, so every handler writes to stderr
NOISY_LOGGERS = ("asyncio", "git", "mcp")

CONTEXT_FIELDS = ("request_id", "tool", "duration_ms")


class SafeStreamHandler(logging.StreamHandler):
    """
    Stream handler that stays silent once stderr has been closed on shutdown.
    """

    def handleError(self, record):
        if getattr(self.stream, "closed", False):
            return
        super().handleError(record)


class StructuredLogFormatter(logging.Formatter):
    """
    Formats log records as one JSON object per line, with tool call context.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            log_record["exception"] = record.exc_text
        return json.dumps(log_record, ensure_ascii=False)


def verbosity_to_level(verbose: int) -> str:
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return "WARNING"


def configure_logging(log_level: str = "WARNING", stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger with structured JSON output on stderr.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = SafeStreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredLogFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel("WARNING")
