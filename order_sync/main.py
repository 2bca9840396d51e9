"""Command-line entry point: keep one session's orders in sync until interrupted."""

import argparse
import asyncio
import contextlib

from .config import SyncSettings
from .feed import HttpOrderFeed
from .logger import logger
from .manager import SyncManager
from .schemas import ClientSession
from .signals import LogSignalChannel
from .store import NotificationStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll the order service and raise order notifications.")
    parser.add_argument("--api-url", help="Order service base URL (default: ORDER_API_URL)")
    parser.add_argument("--token", required=True, help="Session bearer token")
    parser.add_argument("--user-id", required=True, help="Id of the logged-in user")
    parser.add_argument("--role", choices=["admin", "customer"], default="customer")
    parser.add_argument("--interval", type=float, help="Seconds between polls (default: SYNC_INTERVAL_SECONDS)")
    parser.add_argument("--bell", action="store_true", help="Ring the terminal bell on notifications")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> None:
    settings = SyncSettings()
    if args.api_url:
        settings.api_url = args.api_url
    if args.interval:
        settings.interval = args.interval

    session = ClientSession(user_id=args.user_id, role=args.role, token=args.token)
    feed = HttpOrderFeed(settings.api_url, session, timeout=settings.request_timeout)
    store = NotificationStore(settings.store_dir)
    try:
        async with SyncManager(session, feed, store, channel=LogSignalChannel(bell=args.bell), settings=settings):
            await asyncio.Event().wait()
    finally:
        feed.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logger.info(f"Starting order sync | user_id={args.user_id} | role={args.role}")
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run(args))
    logger.info("Order sync shut down")


if __name__ == "__main__":
    main()
