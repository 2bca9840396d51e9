"""Logging configuration module for the ordering server and sync client."""

import sys
from typing import Optional

from loguru import logger as loguru_logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[service]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[service]} | {name}:{function}:{line} - {message}"

# Sinks are process-wide; every service logger shares them
_configured = False
_file_sinks: set[str] = set()


def setup_service_logger(
    service_name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
) -> loguru_logger:
    """Configure a logger for a service with standardized settings.

    Args:
        service_name: Name of the service (e.g., 'order-service')
        log_level: Logging level (default: INFO)
        log_file: Optional path to log file

    Returns:
        logger: Configured loguru logger instance
    """
    global _configured

    if not _configured:
        # Remove the default handler once, then install the shared console sink
        loguru_logger.remove()
        loguru_logger.configure(extra={"service": service_name})
        loguru_logger.add(
            sys.stderr,
            level=log_level,
            format=CONSOLE_FORMAT,
            colorize=True,
            enqueue=True,
            backtrace=True,
            diagnose=True,
        )
        _configured = True

    if log_file and log_file not in _file_sinks:
        _file_sinks.add(log_file)
        loguru_logger.add(
            log_file,
            level=log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="1 week",
            compression="gz",
        )

    return loguru_logger.bind(service=service_name)


def get_component_logger(service_name: str, component: str) -> loguru_logger:
    """Get a logger bound to one component of a service.

    Args:
        service_name: Name of the service
        component: Component name, e.g. 'kafka' or 'poller'

    Returns:
        logger: Logger carrying the '<service>.<component>' context
    """
    return loguru_logger.bind(service=f"{service_name}.{component}")
