"""
Logging setup for relaybroker, built on loguru.

Modules call ``get_logger(__name__)`` and log with plain f-strings.
``setup_logging`` is safe to call more than once (CLI callback, then server).
"""

import sys
from pathlib import Path

from loguru import logger as _logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"component": "relaybroker"})


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Replace loguru's default sink with ours.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...).
        log_file: Optional path for a rotating file sink.
    """
    level = (level or "INFO").upper()

    _logger.remove()
    _logger.add(sys.stderr, level=level, format=LOG_FORMAT, backtrace=False)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        _logger.add(
            str(path),
            level=level,
            format=LOG_FORMAT,
            rotation="10 MB",
            retention=2,
            encoding="utf-8",
        )


def get_logger(name: str):
    """Return a logger bound to the given module name."""
    return _logger.bind(component=name)
