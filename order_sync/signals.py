"""Audio and visual signalling for notifications."""

import sys
from dataclasses import dataclass
from typing import Protocol

from .logger import logger
from .schemas import Notification


@dataclass(frozen=True)
class Tone:
    """A short tone: frequencies played one after the other (Hz), each for ``duration`` seconds."""

    frequencies: tuple[float, ...]
    duration: float


TONES = {
    "success": Tone((523.25, 659.25, 783.99), 0.3),  # C5 E5 G5
    "info": Tone((440.0, 554.37), 0.2),  # A4 C#5
    "beep": Tone((800.0,), 0.15),
}


@dataclass(frozen=True)
class SignalSpec:
    tone: str
    toast_seconds: float
    icon: str


PRIORITY_SIGNALS = {
    "high": SignalSpec(tone="success", toast_seconds=5.0, icon="🔔"),
    "medium": SignalSpec(tone="info", toast_seconds=3.0, icon="📢"),
    "low": SignalSpec(tone="beep", toast_seconds=3.0, icon="ℹ️"),
}


class SignalChannel(Protocol):
    """Protocol for whatever renders toasts and plays tones."""

    def toast(self, notification: Notification, seconds: float, icon: str) -> None:
        """Show a transient message for ``seconds``."""
        ...

    def play(self, tone: Tone) -> None:
        """Play a tone."""
        ...


class LogSignalChannel:
    """Terminal channel: toasts become log lines, tones ring the terminal bell."""

    def __init__(self, bell: bool = False):
        self.bell = bell

    def toast(self, notification: Notification, seconds: float, icon: str) -> None:
        logger.info(f"{icon} {notification.title}: {notification.message} | visible_for={seconds}s")

    def play(self, tone: Tone) -> None:
        logger.debug(f"Tone | frequencies={list(tone.frequencies)} | duration={tone.duration}s")
        if self.bell:
            sys.stderr.write("\a")
            sys.stderr.flush()


def emit(channel: SignalChannel, notification: Notification, sound_enabled: bool = True) -> None:
    """Signal a notification according to its priority.

    Fire and forget: a failing toast or tone is logged and never raised.
    """
    spec = PRIORITY_SIGNALS[notification.priority]
    try:
        channel.toast(notification, spec.toast_seconds, spec.icon)
    except Exception as e:
        logger.warning(f"Could not show toast | notification_id={notification.notification_id} | error={e}")
    if not sound_enabled:
        return
    try:
        channel.play(TONES[spec.tone])
    except Exception as e:
        logger.warning(f"Could not play notification sound | tone={spec.tone} | error={e}")
