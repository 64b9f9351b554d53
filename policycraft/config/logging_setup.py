"""
Logging setup for PolicyCraft.

All PolicyCraft modules log through children of the ``policycraft``
logger (``policycraft.engine.approval``, ``policycraft.mapping.mapper``,
...). configure_logging() attaches handlers to that root logger according
to a LoggingConfig.
"""

import json
import logging
import sys

from policycraft.config.schema import LoggingConfig

ROOT_LOGGER = "policycraft"


class JsonLogFormatter(logging.Formatter):
    """Formats each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """
    Configure the policycraft logger hierarchy.

    Existing handlers installed by a previous call are replaced, so calling
    this repeatedly does not duplicate output.

    Args:
        config: Logging configuration.

    Returns:
        The configured root policycraft logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(config.level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter
    if config.json_format:
        formatter = JsonLogFormatter()
    else:
        formatter = logging.Formatter(config.format)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.output_path:
        file_handler = logging.FileHandler(config.output_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
