"""Structured logging configuration."""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic_settings import BaseSettings

# Fields passed through ``extra=`` that end up in the JSON record
EXTRA_FIELDS = (
    "document_id",
    "chunk_count",
    "status",
    "provider",
    "token_usage",
    "response_time_ms",
    "answer_length",
    "similarity_scores",
    "source_count",
)


class LogSettings(BaseSettings):
    """Logging configuration settings."""

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logger() -> logging.Logger:
    """Configure structured JSON logging."""
    settings = LogSettings()

    logger = logging.getLogger("docu_query")
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    return logger


# Global logger instance
logger = setup_logger()
