"""Environment-driven settings for the order service."""

import os
from dataclasses import dataclass, field


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Runtime configuration read from the process environment.

    Attributes:
        service_name: Name bound to every log record.
        log_level: Minimum log level for the stderr sink.
        log_file: Optional path of a rotating log file.
        kafka_bootstrap_servers: Kafka brokers for order events; None disables publishing.
        strict_transitions: Reject status moves outside the canonical forward flow.
        order_number_max_attempts: Attempts at generating a unique order number.
        seed_demo_data: Load demo products, zones and sessions at startup.
    """

    service_name: str = "order-service"
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: str | None = field(default_factory=lambda: os.getenv("LOG_FILE"))
    kafka_bootstrap_servers: str | None = field(default_factory=lambda: os.getenv("KAFKA_BOOTSTRAP_SERVERS"))
    strict_transitions: bool = field(default_factory=lambda: _env_flag("ORDER_STRICT_TRANSITIONS"))
    order_number_max_attempts: int = field(
        default_factory=lambda: int(os.getenv("ORDER_NUMBER_MAX_ATTEMPTS", "5"))
    )
    seed_demo_data: bool = field(default_factory=lambda: _env_flag("SEED_DEMO_DATA"))

    @property
    def events_enabled(self) -> bool:
        return bool(self.kafka_bootstrap_servers)
