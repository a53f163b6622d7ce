"""Logging setup.

Components log through ``logging.getLogger(__name__)`` and attach
context with ``extra={...}``. This module wires the root handler from
ObservabilityConfig; with ``structured`` enabled each record is emitted
as one JSON object that includes those extra fields.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from .config import ObservabilityConfig, get_config
from .domain.errors import ConfigurationError

# Attributes every LogRecord carries; anything else came from ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(
    config: Optional[ObservabilityConfig] = None,
    logger_name: str = "bus_route_finder",
) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Calling this twice replaces the previous handler instead of
    stacking a second one.

    Args:
        config: Logging configuration (defaults to the app config).
        logger_name: Logger to configure.

    Returns:
        The configured logger.
    """
    config = config or get_config().observability
    logger = logging.getLogger(logger_name)
    try:
        logger.setLevel(config.level.upper())
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid log level: {config.level!r}", setting_name="level", cause=e
        )

    for handler in list(logger.handlers):
        if getattr(handler, "_brf_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._brf_handler = True  # type: ignore[attr-defined]
    if config.structured:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(config.format))
    logger.addHandler(handler)
    return logger
