"""
Logging for the radar Lambdas.

Every component logs through the one `event_radar` logger. Lines go to
stdout, which Lambda forwards to CloudWatch; `LOG_FILE` adds a file copy
for local runs. The logger does not propagate, so the handler the Lambda
runtime installs on the root logger does not print each line twice.
"""

import logging
import os
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    """Level from a name ("debug", "WARNING") or a number; unknown names give `default`."""
    if isinstance(value, int):
        return value
    if not value:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


def setup_logger(
    name: str,
    level: Union[str, int, None] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure `name` with a stdout handler and an optional file handler.

    Calling it again replaces the handlers, so a warm Lambda container
    that re-imports the module keeps a single handler.

    Args:
        name: Logger name
        level: Level name or number (default: INFO)
        log_file: Also write to this file

    Returns:
        The configured logger
    """
    configured = logging.getLogger(name)
    configured.setLevel(parse_level(level))
    configured.propagate = False
    configured.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        configured.addHandler(handler)

    return configured


logger = setup_logger(
    "event_radar",
    level=os.getenv("LOG_LEVEL"),
    log_file=os.getenv("LOG_FILE"),
)
