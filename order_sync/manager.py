"""Per-session wiring of the poller, the dispatcher and the retention sweep."""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

from .config import SyncSettings
from .dispatcher import NotificationDispatcher
from .feed import OrderFeed
from .logger import logger
from .poller import SyncDiff, SyncPoller
from .schemas import ClientSession, Notification, OrderSnapshot, local_now
from .signals import SignalChannel
from .store import NotificationStore


class SyncManager:
    """Everything one logged-in session needs to stay in sync.

    A new manager is built for every login and stopped on logout, so no
    polling state outlives the session that created it.

    Example:
        async with SyncManager(session, feed, store) as manager:
            await manager.place_order(payload)
    """

    def __init__(
        self,
        session: ClientSession,
        feed: OrderFeed,
        store: NotificationStore,
        channel: SignalChannel | None = None,
        settings: SyncSettings | None = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.session = session
        self.settings = settings or SyncSettings()
        self.feed = feed
        self.dispatcher = NotificationDispatcher(
            session,
            store,
            channel=channel,
            clock=clock,
            sound_enabled=self.settings.sound_enabled,
        )
        self.poller = SyncPoller(feed, self._on_diff, interval=self.settings.interval)
        self._sweeper: asyncio.Task | None = None

    @property
    def notifications(self) -> list[Notification]:
        return self.dispatcher.notifications

    def start(self) -> None:
        self.poller.start()
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.info(f"Sync session started | user_id={self.session.user_id} | role={self.session.role}")

    async def stop(self) -> None:
        self.poller.stop()
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        logger.info(f"Sync session stopped | user_id={self.session.user_id}")

    async def __aenter__(self) -> "SyncManager":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def place_order(self, payload: dict[str, Any]) -> OrderSnapshot:
        """Create an order and notify about it right away.

        Raises:
            FeedError: If the order service rejected or never received the order.
        """
        order = await self.feed.create_order(payload)
        self.dispatcher.order_placed(order)
        return order

    async def update_status(self, order_id: str, status: str) -> OrderSnapshot:
        """Apply a status change (staff) and notify the order's owner right away."""
        order = await self.feed.update_status(order_id, status)
        self.dispatcher.status_updated(order)
        return order

    async def refresh(self) -> SyncDiff | None:
        return await self.poller.poll_once()

    def _on_diff(self, diff: SyncDiff) -> None:
        self.dispatcher.dispatch_diff(diff)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.sweep_interval)
            try:
                self.dispatcher.sweep()
            except Exception as e:
                logger.exception(f"Notification sweep failed: {e}")
