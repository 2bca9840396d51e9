"""Error taxonomy for the order service.

Every error carries the HTTP status the API answers with, so routes can simply
let them propagate to the exception handler registered in ``server.py``.
"""

from typing import Any


class OrderingError(Exception):
    """Base class for all order-service failures."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        """Render the error in the API envelope."""
        payload: dict[str, Any] = {"success": False, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailed(OrderingError):
    """Malformed request shape or a rule on the request itself was broken."""

    status_code = 400


class ProductUnavailable(OrderingError):
    """Referenced product does not exist or is switched off."""

    status_code = 400


class SizeUnavailable(OrderingError):
    """Requested size is unknown for the product or not currently offered."""

    status_code = 400


class NotServiceable(OrderingError):
    """No available delivery zone covers the (city, neighborhood) pair."""

    status_code = 400


class NotFound(OrderingError):
    status_code = 404


class Unauthorized(OrderingError):
    status_code = 401


class Forbidden(OrderingError):
    status_code = 403


class InvalidTransition(OrderingError):
    """Status move rejected because strict transitions are enabled."""

    status_code = 409


class DuplicateKey(OrderingError):
    """A record store uniqueness constraint was violated."""

    status_code = 409
