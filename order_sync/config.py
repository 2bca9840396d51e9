"""Environment-driven settings for the order sync client."""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _default_store_dir() -> Path:
    return Path(os.getenv("NOTIFICATION_STORE_DIR", Path.home() / ".order_sync" / "notifications"))


@dataclass
class SyncSettings:
    """Client configuration.

    Attributes:
        api_url: Base URL of the order service.
        interval: Seconds between two polling ticks.
        request_timeout: Timeout of one HTTP request, in seconds.
        store_dir: Directory holding one notification file per user.
        sweep_interval: Seconds between two retention sweeps.
        sound_enabled: Play tones along with toasts.
    """

    api_url: str = field(default_factory=lambda: os.getenv("ORDER_API_URL", "http://localhost:8000"))
    interval: float = field(default_factory=lambda: float(os.getenv("SYNC_INTERVAL_SECONDS", "30")))
    request_timeout: float = field(default_factory=lambda: float(os.getenv("SYNC_REQUEST_TIMEOUT", "10")))
    store_dir: Path = field(default_factory=_default_store_dir)
    sweep_interval: float = field(default_factory=lambda: float(os.getenv("NOTIFICATION_SWEEP_SECONDS", "60")))
    sound_enabled: bool = field(default_factory=lambda: os.getenv("NOTIFICATION_SOUND", "true").lower() == "true")
