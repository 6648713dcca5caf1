# runroute/core/logging_config.py
import sys

from runroute.core.logger import LOG_FORMAT, logger


def setup_logging(level: str = "INFO") -> None:
    """
    Configure application-wide logging using loguru.

    Called once from the application factory; replaces the import-time sink
    installed by runroute.core.logger with one honouring LOG_LEVEL.
    """
    logger.remove()

    logger.add(
        sys.stdout,
        level=level.upper(),
        format=LOG_FORMAT,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    logger.debug("Logging configured at level {}", level.upper())
