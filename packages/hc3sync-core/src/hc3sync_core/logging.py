from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hc3sync_core.config import LoggingConfig

ROOT_LOGGER = "hc3sync"

# Extra attributes the engine attaches to records via ``extra=``.
_CONTEXT_FIELDS = ("kind", "path", "trigger")


class JSONLinesFormatter(logging.Formatter):
    """One JSON object per record, carrying engine context fields when set."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": record.created,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = str(value)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> logging.Logger:
    """Install a single stderr handler on the ``hc3sync`` logger.

    Calling it again is a no-op once a handler is present, so both the
    CLI and embedding hosts can call it unconditionally.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONLinesFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))

    logger.addHandler(handler)
    return logger


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """Same as :func:`setup_logging`, driven by the ``[logging]`` section."""
    return setup_logging(level=config.level, json_output=config.json)


def get_logger(name: str) -> logging.Logger:
    """Get a child logger under the hc3sync namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
