"""Logger module for the order sync client."""

import os

from logging_utils import get_component_logger, setup_service_logger

logger = setup_service_logger(
    "order-sync",
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE"),
)

poller_logger = get_component_logger("order-sync", "poller")

__all__ = ["logger", "poller_logger"]
