"""
Logging setup for memotable.

memotable modules log through ``logging.getLogger(__name__)`` under the ``memotable``
namespace, which carries a NullHandler so nothing is printed unless the application
configures logging. setup_logging() attaches a rich console handler for interactive use.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from memotable.io.config import CacheSettings

_ROOT = "memotable"


def setup_logging(level: str | None = None, console: Console | None = None) -> logging.Logger:
    """
    Send memotable logs to a rich console handler.

    Args:
        level: Logging level name; defaults to CacheSettings.load().log_level.
        console: Console to write to (stderr by default).

    Returns:
        logging.Logger: The ``memotable`` package logger.
    """
    level = (level or CacheSettings.load().log_level).upper()
    root = logging.getLogger(_ROOT)
    root.setLevel(getattr(logging, level))

    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setLevel(getattr(logging, level))
    root.addHandler(handler)
    return root

