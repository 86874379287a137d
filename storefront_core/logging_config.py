"""
logging_config.py — Logging Setup for the Storefront Core

Checkout, order placement and the fulfillment state machine all log through the
root logger configured here. Messages about a single order carry an
`[Order: <id>]` prefix and pricing messages a `[Checkout]` prefix, so one grep over
the log file reconstructs what happened to an order, including every gateway call.

Destination and level come from LOG_FILE / LOG_LEVEL (see config.py).
"""

import logging
import sys

from .config import LOG_FILE, LOG_LEVEL

LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

# Request-level chatter of the gateway HTTP client; failures are logged by the state machine
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_file=LOG_FILE, level=LOG_LEVEL):
    """
    Installs the file and stdout handlers on the root logger.

    Calling it again replaces the previous handlers, so a test or a worker process
    can redirect the log without duplicating lines.

    Args:
        log_file (str | None): Path of the persistent log. None logs to stdout only.
        level (str | int): Root log level, e.g. "INFO" or logging.DEBUG.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name):
    """Returns the logger for `name`; handlers and format come from setup_logging()."""
    return logging.getLogger(name)
