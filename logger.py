import sys

from loguru import logger

from settings import settings


def setup_logger(level: str = None):
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=level or settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )
    return logger
