"""Logger module for the order service."""

import os

from logging_utils import get_component_logger, setup_service_logger

logger = setup_service_logger(
    "order-service",
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE"),
)

# Kafka delivery reports go through their own component logger
kafka_logger = get_component_logger("order-service", "kafka")

__all__ = ["logger", "kafka_logger"]
