"""
Structured logging helpers.

Loggers are structlog loggers bound to stdlib loggers under the
``agreement`` namespace, so output follows whatever the host configured
for :mod:`logging` and stays silent otherwise.
"""

import logging
import sys
from typing import Any

import structlog

ROOT_LOGGER = "agreement"

_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.KeyValueRenderer(key_order=["event"], sort_keys=True),
]


def get_logger(name: str) -> Any:
    """Return a structlog logger writing to the stdlib logger ``name``"""
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


class ConsoleHandler(logging.StreamHandler):
    """stderr handler installed by :func:`configure_logging`"""

    def __init__(self):
        super().__init__(sys.stderr)
        self.setFormatter(logging.Formatter("%(asctime)s %(message)s"))


def configure_logging(level: str = "INFO") -> None:
    """
    Send agreement log events to stderr.

    Meant for scripts and debugging sessions; applications that already
    configure logging do not need it. Calling it again replaces the
    handler installed by the previous call.
    """
    package_logger = logging.getLogger(ROOT_LOGGER)
    for existing in list(package_logger.handlers):
        if isinstance(existing, ConsoleHandler):
            package_logger.removeHandler(existing)

    package_logger.addHandler(ConsoleHandler())
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
