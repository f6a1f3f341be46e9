"""
Logging configuration.

Every module logs through a module-level ``logging.getLogger(__name__)``.
setup_logging() is called once from the application lifespan and attaches a
single stream handler to the ``ledger`` logger, formatted either as JSON
(one object per line, for log shippers) or as plain text (for local runs).

Context is passed with ``extra={...}``; any attribute that is not a standard
LogRecord field ends up in the JSON "context" object.
"""

import json
import logging
from datetime import datetime, timezone

# Attributes every LogRecord carries; anything else came from extra={...}
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", log_format: str = "json") -> logging.Logger:
    """
    Configure the ``ledger`` logger hierarchy.

    Safe to call more than once: existing handlers are replaced rather than
    stacked, so reloading the app does not duplicate log lines.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" or "text".

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("ledger")

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # uvicorn installs its own root handlers; don't print everything twice
    logger.propagate = False

    return logger
