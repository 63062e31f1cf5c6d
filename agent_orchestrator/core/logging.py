"""Logging setup shared by the API process and tests."""

import logging
import sys
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | [%(correlation_id)s] %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "litellm", "urllib3")


class CorrelationIdFilter(logging.Filter):
    """Attach the current request's correlation ID to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(level: str = "INFO") -> None:
    """
    Install a stdout handler on the root logger.

    Does nothing to handlers if the root logger is already configured
    (uvicorn or pytest got there first); only the level is applied.

    Args:
        level: Log level name for the root logger
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(CorrelationIdFilter())
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
