"""Polling order synchronization.

One ``SyncPoller`` exists per logged-in session. Each tick fetches the order
collection, diffs it against the previous snapshot and hands the whole diff
to a callback in one go.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

from .feed import FeedError, OrderFeed
from .logger import poller_logger as logger
from .schemas import OrderSnapshot


@dataclass(frozen=True)
class StatusChange:
    order: OrderSnapshot
    previous_status: str


@dataclass(frozen=True)
class SyncDiff:
    """Outcome of one diff tick."""

    new: list[OrderSnapshot] = field(default_factory=list)
    status_changed: list[StatusChange] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.new and not self.status_changed


def diff_snapshots(previous: dict[str, OrderSnapshot], current: list[OrderSnapshot]) -> SyncDiff:
    """Classify the orders of a fresh fetch against the previous snapshot.

    An id absent from ``previous`` is new; an id present in both with another
    status is a status change; anything else is ignored.
    """
    new, changed = [], []
    for order in current:
        before = previous.get(order.id)
        if before is None:
            new.append(order)
        elif before.status != order.status:
            changed.append(StatusChange(order=order, previous_status=before.status))
    return SyncDiff(new=new, status_changed=changed)


class SyncPoller:
    """Periodically fetches orders and reports diffs.

    At most one fetch is in flight: a tick that comes due while the previous
    fetch is still running is skipped, and a manual ``poll_once`` joins the
    running fetch instead of starting another. ``start`` on a running poller
    re-arms the timer instead of adding a second one; a fetch already in flight
    still counts. ``stop`` only cancels the timer; an in-flight fetch completes
    but its result is thrown away.

    The first successful fetch only sets the baseline and reports nothing.
    """

    def __init__(
        self,
        feed: OrderFeed,
        on_diff: Callable[[SyncDiff], None],
        interval: float = 30.0,
    ):
        self._feed = feed
        self._on_diff = on_diff
        self.interval = interval
        self._snapshot: dict[str, OrderSnapshot] | None = None
        self._timer: asyncio.Task | None = None
        self._in_flight: asyncio.Task | None = None
        self._enabled = False
        self._epoch = 0
        self.stats = {"ticks": 0, "skipped": 0, "errors": 0, "discarded": 0}

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def snapshot(self) -> dict[str, OrderSnapshot]:
        return dict(self._snapshot or {})

    def start(self) -> None:
        """Start polling immediately, then every ``interval`` seconds."""
        if self._timer is not None:
            self._timer.cancel()
        self._enabled = True
        self._timer = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Order sync started | interval={self.interval}s")

    def stop(self) -> None:
        self._epoch += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._enabled:
            self._enabled = False
            logger.info(
                f"Order sync stopped | ticks={self.stats['ticks']} | skipped={self.stats['skipped']} | "
                f"errors={self.stats['errors']}"
            )

    def update_interval(self, interval: float) -> None:
        self.interval = interval
        if self.running:
            self.start()

    async def poll_once(self) -> SyncDiff | None:
        """Fetch and diff right away, outside the timer (manual refresh).

        If a fetch is already in flight its outcome is returned instead.
        """
        if self._in_flight is None or self._in_flight.done():
            self._in_flight = asyncio.create_task(self._tick(self._epoch))
        else:
            logger.debug("Fetch already in flight, joining it")
        return await asyncio.shield(self._in_flight)

    async def _run(self) -> None:
        while True:
            self._schedule_tick()
            await asyncio.sleep(self.interval)

    def _schedule_tick(self) -> None:
        if self._in_flight is not None and not self._in_flight.done():
            self.stats["skipped"] += 1
            logger.debug("Previous fetch still in flight, skipping tick")
            return
        self._in_flight = asyncio.create_task(self._tick(self._epoch))

    async def _tick(self, epoch: int) -> SyncDiff | None:
        self.stats["ticks"] += 1
        try:
            orders = await self._feed.fetch_orders()
        except FeedError as e:
            self.stats["errors"] += 1
            logger.warning(f"Order sync failed, retrying next tick | error={e}")
            return None
        except Exception as e:
            self.stats["errors"] += 1
            logger.exception(f"Unexpected order sync error: {e}")
            return None

        if epoch != self._epoch:
            self.stats["discarded"] += 1
            logger.debug("Poller stopped during fetch, discarding result")
            return None

        previous = self._snapshot
        self._snapshot = {order.id: order for order in orders}
        if previous is None:
            logger.info(f"Order sync baseline established | orders={len(orders)}")
            return None

        diff = diff_snapshots(previous, orders)
        if diff.empty:
            return diff
        logger.info(f"Orders updated | new={len(diff.new)} | status_changed={len(diff.status_changed)}")
        try:
            self._on_diff(diff)
        except Exception as e:
            logger.exception(f"Diff handler failed: {e}")
        return diff
