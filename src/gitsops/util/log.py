# src/gitsops/util/log.py: Logging setup for filter diagnostics.
# All log output goes to stderr: git reads a filter's stdout verbatim as file
# content. Records can be rendered as plain text or as structured JSON, and a
# contextvar injects the path currently being filtered into every record.

import contextvars
import json
import logging
import re
import sys

LOGGER_NAME = "gitsops"

path_context = contextvars.ContextVar("path_context", default=None)

# sops echoes key material in some of its diagnostics.
AGE_SECRET_KEY = re.compile(r"AGE-SECRET-KEY-[0-9A-Z]+")


class RedactingFilter(logging.Filter):
    """A logging filter that masks age secret keys."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = AGE_SECRET_KEY.sub("[REDACTED]", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class PathFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.path = path_context.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "path": getattr(record, "path", None),
        }
        return json.dumps(log_record)


class TextFormatter(logging.Formatter):
    def format(self, record):
        if record.levelno >= logging.ERROR:
            prefix = "Error: "
        elif record.levelno == logging.WARNING:
            prefix = "Warning: "
        else:
            prefix = ""
        return f"{prefix}{record.getMessage()}"


def setup_logging(level: str = "INFO", json_format: bool = False) -> logging.Logger:
    """Configure the package logger to write to stderr."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else TextFormatter())
    handler.addFilter(PathFilter())
    handler.addFilter(RedactingFilter())
    logger.addHandler(handler)
    return logger


def get_logger(name):
    return logging.getLogger(name)
