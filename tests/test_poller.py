"""Tests for the order sync poller."""

import asyncio

import pytest

from order_sync.feed import FeedError
from order_sync.poller import SyncPoller, diff_snapshots
from order_sync.schemas import OrderSnapshot


def snap(order_id: str, status: str = "pending", user_id: str = "cust-1") -> OrderSnapshot:
    return OrderSnapshot(id=order_id, order_number=f"SH000{order_id}", user_id=user_id, status=status)


class FakeFeed:
    """Order feed returning queued responses; an exception in the queue is raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.gate: asyncio.Event | None = None

    async def fetch_orders(self):
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
        finally:
            self.active -= 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_diff_classifies_new_and_changed_orders():
    previous = {"1": snap("1"), "2": snap("2", "confirmed")}
    current = [snap("1", "preparing"), snap("2", "confirmed"), snap("3")]

    diff = diff_snapshots(previous, current)

    assert [o.id for o in diff.new] == ["3"]
    assert [(c.order.id, c.previous_status, c.order.status) for c in diff.status_changed] == [
        ("1", "pending", "preparing")
    ]
    assert not diff.empty


def test_diff_ignores_unchanged_and_vanished_orders():
    diff = diff_snapshots({"1": snap("1"), "2": snap("2")}, [snap("1")])

    assert diff.empty


@pytest.mark.asyncio
async def test_first_poll_only_sets_baseline(mocker):
    on_diff = mocker.Mock()
    poller = SyncPoller(FakeFeed([snap("1")]), on_diff)

    assert await poller.poll_once() is None
    assert set(poller.snapshot) == {"1"}
    on_diff.assert_not_called()


@pytest.mark.asyncio
async def test_diff_is_reported_once_per_tick(mocker):
    """A burst of changes reaches the handler as one coherent diff."""
    on_diff = mocker.Mock()
    feed = FakeFeed(
        [snap("1"), snap("2")],
        [snap("1", "confirmed"), snap("2", "cancelled"), snap("3")],
        [snap("1", "confirmed"), snap("2", "cancelled"), snap("3")],
    )
    poller = SyncPoller(feed, on_diff)

    await poller.poll_once()
    diff = await poller.poll_once()
    unchanged = await poller.poll_once()

    on_diff.assert_called_once_with(diff)
    assert [o.id for o in diff.new] == ["3"]
    assert {c.order.id for c in diff.status_changed} == {"1", "2"}
    assert unchanged.empty


@pytest.mark.asyncio
async def test_fetch_error_is_retried_next_tick(mocker):
    on_diff = mocker.Mock()
    feed = FakeFeed([snap("1")], FeedError("connection refused"), [snap("1", "ready")])
    poller = SyncPoller(feed, on_diff)

    await poller.poll_once()
    assert await poller.poll_once() is None
    assert poller.stats["errors"] == 1
    assert poller.snapshot["1"].status == "pending"

    diff = await poller.poll_once()
    assert diff.status_changed[0].previous_status == "pending"


@pytest.mark.asyncio
async def test_unexpected_error_does_not_escape(mocker):
    poller = SyncPoller(FakeFeed(RuntimeError("boom")), mocker.Mock())

    assert await poller.poll_once() is None
    assert poller.stats["errors"] == 1


@pytest.mark.asyncio
async def test_failing_handler_keeps_snapshot(mocker):
    on_diff = mocker.Mock(side_effect=ValueError("handler bug"))
    poller = SyncPoller(FakeFeed([snap("1")], [snap("1"), snap("2")]), on_diff)

    await poller.poll_once()
    diff = await poller.poll_once()

    assert [o.id for o in diff.new] == ["2"]
    assert set(poller.snapshot) == {"1", "2"}


@pytest.mark.asyncio
async def test_tick_is_skipped_while_fetch_in_flight(mocker):
    feed = FakeFeed([snap("1")])
    feed.gate = asyncio.Event()
    poller = SyncPoller(feed, mocker.Mock(), interval=3600)

    poller.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    poller._schedule_tick()

    assert feed.calls == 1
    assert poller.stats["skipped"] == 1

    feed.gate.set()
    await poller._in_flight
    poller.stop()
    assert set(poller.snapshot) == {"1"}


@pytest.mark.asyncio
async def test_stop_discards_in_flight_result(mocker):
    feed = FakeFeed([snap("1")])
    feed.gate = asyncio.Event()
    poller = SyncPoller(feed, mocker.Mock(), interval=3600)

    poller.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    poller.stop()
    feed.gate.set()
    await poller._in_flight

    assert not poller.enabled
    assert not poller.running
    assert poller.snapshot == {}
    assert poller.stats["discarded"] == 1


@pytest.mark.asyncio
async def test_restart_rearms_single_timer(mocker):
    poller = SyncPoller(FakeFeed([snap("1")], [snap("1")]), mocker.Mock(), interval=3600)

    poller.start()
    first_timer = poller._timer
    poller.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert first_timer.cancelled()
    assert poller.running
    poller.stop()


@pytest.mark.asyncio
async def test_manual_refresh_joins_in_flight_fetch(mocker):
    feed = FakeFeed([snap("1")])
    feed.gate = asyncio.Event()
    poller = SyncPoller(feed, mocker.Mock(), interval=3600)

    poller.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    refresh = asyncio.create_task(poller.poll_once())
    await asyncio.sleep(0)
    feed.gate.set()

    assert await refresh is None
    assert feed.calls == 1
    assert feed.max_active == 1
    assert set(poller.snapshot) == {"1"}
    poller.stop()


@pytest.mark.asyncio
async def test_restart_during_fetch_keeps_its_result(mocker):
    feed = FakeFeed([snap("1")])
    feed.gate = asyncio.Event()
    poller = SyncPoller(feed, mocker.Mock(), interval=3600)

    poller.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    poller.start()
    await asyncio.sleep(0)
    feed.gate.set()
    await poller._in_flight

    assert feed.calls == 1
    assert poller.stats["discarded"] == 0
    assert set(poller.snapshot) == {"1"}
    poller.stop()


@pytest.mark.asyncio
async def test_update_interval_rearms_only_a_running_poller(mocker):
    poller = SyncPoller(FakeFeed([snap("1")]), mocker.Mock(), interval=3600)

    poller.update_interval(60)
    assert poller.interval == 60
    assert not poller.running

    poller.start()
    first_timer = poller._timer
    poller.update_interval(120)
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert poller.interval == 120
    assert first_timer.cancelled()
    assert poller.running
    assert poller._timer is not first_timer
    poller.stop()
