"""Logger module for the shop service."""

import sys
from typing import Optional

from loguru import logger as loguru_logger


def setup_service_logger(
    service_name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
):
    """Configure loguru for the service.

    Args:
        service_name: Name bound to every record (e.g. 'shop-service')
        log_level: Logging level (default: INFO)
        log_file: Optional path to a rotating log file

    Returns:
        logger: Configured loguru logger bound to the service name
    """
    # Remove any existing handlers
    loguru_logger.remove()

    loguru_logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        loguru_logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="1 week",
            compression="gz",
        )

    return loguru_logger.bind(service=service_name)


# Sinks are configured once, by the entry point; modules only import the bound logger.
logger = loguru_logger.bind(service="shop-service")

__all__ = ["logger", "setup_service_logger"]
