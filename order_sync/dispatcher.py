"""Notification dispatcher for the sync client.

Turns order events into notifications for the logged-in session. Whether
they come from a poll diff or from an action the user just performed, every
candidate goes through the same gate: role targeting first, then
deduplication, then persistence and signalling.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from .logger import logger
from .poller import SyncDiff
from .schemas import ClientSession, Notification, OrderSnapshot, local_now
from .signals import LogSignalChannel, SignalChannel, emit
from .store import MAX_NOTIFICATIONS, NotificationStore, prune

DEDUP_WINDOW = timedelta(seconds=60)

# Per-status notification content
STATUS_MESSAGES = {
    "pending": {
        "title": "Order received",
        "message": "Your order {number} has been received",
        "priority": "medium",
    },
    "confirmed": {
        "title": "Order confirmed",
        "message": "Your order {number} has been confirmed",
        "priority": "medium",
    },
    "preparing": {
        "title": "Being prepared",
        "message": "Your order {number} is being prepared",
        "priority": "medium",
    },
    "ready": {
        "title": "Order ready",
        "message": "Your order {number} is ready!",
        "priority": "medium",
    },
    "out_for_delivery": {
        "title": "Out for delivery",
        "message": "Your order {number} is on its way",
        "priority": "medium",
    },
    "delivered": {
        "title": "Order delivered",
        "message": "Your order {number} has been delivered",
        "priority": "high",
    },
    "cancelled": {
        "title": "Order cancelled",
        "message": "Your order {number} has been cancelled",
        "priority": "medium",
    },
}

_FALLBACK_STATUS_MESSAGE = {
    "title": "Order update",
    "message": "The status of order {number} has been updated",
    "priority": "medium",
}


def status_content(status: str, order_number: str) -> tuple[str, str, str]:
    """Return ``(title, message, priority)`` for a status change."""
    config = STATUS_MESSAGES.get(status, _FALLBACK_STATUS_MESSAGE)
    return config["title"], config["message"].format(number=order_number), config["priority"]


class NotificationDispatcher:
    """Keeps the notification list of one session.

    Args:
        session: The logged-in user
        store: Per-user persistence
        channel: Toast and tone output
        clock: Returns the current, timezone-aware time
        dedup_window: Same order number and type within this window is a duplicate
        max_entries: Cap on the kept list
        sound_enabled: Whether tones are played
    """

    def __init__(
        self,
        session: ClientSession,
        store: NotificationStore,
        channel: SignalChannel | None = None,
        clock: Callable[[], datetime] = local_now,
        dedup_window: timedelta = DEDUP_WINDOW,
        max_entries: int = MAX_NOTIFICATIONS,
        sound_enabled: bool = True,
    ):
        self.session = session
        self.store = store
        self.channel = channel or LogSignalChannel()
        self.clock = clock
        self.dedup_window = dedup_window
        self.max_entries = max_entries
        self.sound_enabled = sound_enabled
        self._notifications = store.load(session.user_id, clock())
        self.stats = {"dispatched": 0, "filtered": 0, "duplicates": 0}

    @property
    def notifications(self) -> list[Notification]:
        """Current list, newest first."""
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.is_read)

    def is_visible(self, notification: Notification) -> bool:
        """Whether the session is entitled to see ``notification``."""
        return (
            notification.target_role == "all"
            or notification.target_role == self.session.role
            or (notification.user_id is not None and notification.user_id == self.session.user_id)
        )

    def is_duplicate(self, notification: Notification) -> bool:
        """Whether an equivalent notification was recorded within the dedup window."""
        if notification.order_number is None:
            return False
        cutoff = notification.created_at - self.dedup_window
        return any(
            existing.order_number == notification.order_number
            and existing.type == notification.type
            and existing.created_at > cutoff
            for existing in self._notifications
        )

    def notify(self, notification: Notification) -> Notification | None:
        """Record and signal a notification.

        Returns:
            The recorded notification, or None when it was filtered out or
            suppressed as a duplicate.
        """
        if not self.is_visible(notification):
            self.stats["filtered"] += 1
            logger.debug(
                f"Notification not addressed to session | type={notification.type} | "
                f"target_role={notification.target_role} | role={self.session.role}"
            )
            return None
        if self.is_duplicate(notification):
            self.stats["duplicates"] += 1
            logger.debug(
                f"Duplicate notification prevented | type={notification.type} | "
                f"order_number={notification.order_number}"
            )
            return None

        self._notifications.insert(0, notification)
        self._commit()
        self.stats["dispatched"] += 1
        logger.info(
            f"Notification dispatched | notification_id={notification.notification_id} | "
            f"type={notification.type} | order_number={notification.order_number} | priority={notification.priority}"
        )
        emit(self.channel, notification, sound_enabled=self.sound_enabled)
        return notification

    def dispatch_diff(self, diff: SyncDiff) -> list[Notification]:
        """Raise the notifications for one poll diff.

        New orders alert staff; status changes alert the order's owner, or
        staff when the session is a staff session.
        """
        raised = []
        if self.session.is_staff:
            for order in diff.new:
                raised.append(self.notify(self._new_order(order)))
        for change in diff.status_changed:
            raised.append(self.notify(self._status_changed(change.order, target_role=self.session.role)))
        return [n for n in raised if n is not None]

    def order_placed(self, order: OrderSnapshot) -> list[Notification]:
        """Notifications for an order the session just created itself."""
        confirmation = Notification(
            type="order_placed",
            title="Order placed",
            message=f"Your order {order.order_number} has been created",
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            created_at=self.clock(),
            target_role="customer",
            user_id=order.user_id,
            priority="high",
        )
        raised = [self.notify(confirmation), self.notify(self._new_order(order))]
        return [n for n in raised if n is not None]

    def status_updated(self, order: OrderSnapshot) -> Notification | None:
        """Notification for a status change the session just applied itself."""
        return self.notify(self._status_changed(order, target_role="customer"))

    def mark_as_read(self, notification_id: str) -> bool:
        for i, notification in enumerate(self._notifications):
            if notification.notification_id == notification_id:
                self._notifications[i] = notification.model_copy(update={"is_read": True})
                self._commit()
                return True
        return False

    def mark_all_as_read(self) -> None:
        self._notifications = [n.model_copy(update={"is_read": True}) for n in self._notifications]
        self._commit()

    def delete(self, notification_id: str) -> bool:
        remaining = [n for n in self._notifications if n.notification_id != notification_id]
        if len(remaining) == len(self._notifications):
            return False
        self._notifications = remaining
        self._commit()
        return True

    def clear_all(self) -> None:
        self._notifications = []
        try:
            self.store.clear(self.session.user_id)
        except OSError as e:
            logger.error(f"Failed to clear notification store | user_id={self.session.user_id} | error={e}")

    def toggle_sound(self) -> bool:
        self.sound_enabled = not self.sound_enabled
        logger.info(f"Notification sound {'enabled' if self.sound_enabled else 'disabled'}")
        return self.sound_enabled

    def sweep(self) -> int:
        """Drop notifications from earlier days. Returns how many were removed."""
        before = len(self._notifications)
        self._commit()
        removed = before - len(self._notifications)
        if removed:
            logger.info(f"Notification sweep | removed={removed} | kept={len(self._notifications)}")
        return removed

    def _commit(self) -> None:
        self._notifications = prune(self._notifications, self.clock(), self.max_entries)
        try:
            self.store.save(self.session.user_id, self._notifications)
        except OSError as e:
            logger.error(f"Failed to persist notifications | user_id={self.session.user_id} | error={e}")

    def _new_order(self, order: OrderSnapshot) -> Notification:
        return Notification(
            type="order_placed",
            title="New order",
            message=f"New order {order.order_number} received",
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            created_at=self.clock(),
            target_role="admin",
            priority="high",
        )

    def _status_changed(self, order: OrderSnapshot, target_role: str) -> Notification:
        title, message, priority = status_content(order.status, order.order_number)
        return Notification(
            type="order_status_changed",
            title=title,
            message=message,
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            created_at=self.clock(),
            target_role=target_role,
            user_id=order.user_id,
            priority=priority,
        )
