"""HTTP access to the order service for the sync client."""

import asyncio
from typing import Any, Protocol

import requests

from .logger import logger
from .schemas import ClientSession, OrderSnapshot

STAFF_PAGE_SIZE = 100
CUSTOMER_PAGE_SIZE = 50


class FeedError(Exception):
    """Network or protocol failure while talking to the order service."""


class OrderFeed(Protocol):
    """Protocol for the order source the poller and manager talk to."""

    async def fetch_orders(self) -> list[OrderSnapshot]:
        """Fetch the order collection visible to the session."""
        ...

    async def create_order(self, payload: dict[str, Any]) -> OrderSnapshot: ...

    async def update_status(self, order_id: str, status: str) -> OrderSnapshot: ...


class HttpOrderFeed:
    """Order feed backed by the order service HTTP API.

    Staff sessions read every order, customers read their own. The blocking
    ``requests`` calls run in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        base_url: str,
        session: ClientSession,
        timeout: float = 10.0,
        http: requests.Session | None = None,
    ):
        """Initialize the feed.

        Args:
            base_url: Order service base URL
            session: Session whose token authenticates every request
            timeout: Per-request timeout in seconds
            http: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self._http = http or requests.Session()

    @property
    def orders_path(self) -> str:
        return "/api/orders/admin/all" if self.session.is_staff else "/api/orders"

    async def fetch_orders(self) -> list[OrderSnapshot]:
        return await asyncio.to_thread(self._fetch_orders)

    async def create_order(self, payload: dict[str, Any]) -> OrderSnapshot:
        return await asyncio.to_thread(self._create_order, payload)

    async def update_status(self, order_id: str, status: str) -> OrderSnapshot:
        return await asyncio.to_thread(self._update_status, order_id, status)

    def _fetch_orders(self) -> list[OrderSnapshot]:
        limit = STAFF_PAGE_SIZE if self.session.is_staff else CUSTOMER_PAGE_SIZE
        data = self._request("GET", self.orders_path, params={"page": 1, "limit": limit})
        orders = [OrderSnapshot.model_validate(o) for o in data.get("orders", [])]
        logger.debug(f"Orders fetched | path={self.orders_path} | count={len(orders)}")
        return orders

    def _create_order(self, payload: dict[str, Any]) -> OrderSnapshot:
        data = self._request("POST", "/api/orders", json=payload)
        return OrderSnapshot.model_validate(data["order"])

    def _update_status(self, order_id: str, status: str) -> OrderSnapshot:
        data = self._request("PUT", f"/api/orders/{order_id}/status", json={"status": status})
        return OrderSnapshot.model_validate(data["order"])

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send one request and unwrap the ``data`` member of the envelope.

        Raises:
            FeedError: On connection errors, non-2xx answers or malformed bodies.
        """
        try:
            response = self._http.request(
                method,
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {self.session.token}"},
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise FeedError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise FeedError(f"{method} {path} returned a malformed body: {e}") from e
        if not isinstance(body, dict) or not body.get("success") or not isinstance(body.get("data"), dict):
            raise FeedError(f"{method} {path} returned an unexpected envelope")
        return body["data"]

    def close(self) -> None:
        self._http.close()
