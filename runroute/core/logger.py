# runroute/core/logger.py
from loguru import logger
import sys

from runroute.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Import-time sink so services log sensibly when used outside the API
# (tests, scripts). create_app() replaces it via setup_logging().
logger.remove()
logger.add(sys.stdout, format=LOG_FORMAT, level=settings.LOG_LEVEL.upper())

__all__ = ["logger", "LOG_FORMAT"]
