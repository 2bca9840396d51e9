"""Order status transitions and payment confirmation."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .errors import InvalidTransition, ValidationFailed
from .logger import logger
from .producer import OrderEventProducer
from .schemas import ORDER_STATUSES, Order, OrderStatus, PaymentOutcome, utcnow
from .store import RecordCollection

CANONICAL_FLOW: tuple[str, ...] = ("pending", "confirmed", "preparing", "ready", "out_for_delivery", "delivered")
TERMINAL_STATUSES = frozenset({"delivered", "cancelled"})

# Strict mode graph: one step forward, or cancel from any non-terminal status.
STRICT_TRANSITIONS: dict[str, frozenset[str]] = {
    status: frozenset({CANONICAL_FLOW[i + 1], "cancelled"})
    for i, status in enumerate(CANONICAL_FLOW[:-1])
}
STRICT_TRANSITIONS.update({status: frozenset() for status in TERMINAL_STATUSES})


@dataclass(frozen=True)
class Transition:
    """Result of a status change."""

    order: Order
    previous_status: OrderStatus

    @property
    def changed(self) -> bool:
        return self.order.status != self.previous_status


class OrderStateMachine:
    """Applies staff-initiated status changes to stored orders.

    By default any status may follow any other, including leaving a terminal
    status. With ``strict=True`` only the canonical forward step or a
    cancellation of a non-terminal order is accepted.
    """

    def __init__(
        self,
        orders: RecordCollection[Order],
        events: OrderEventProducer | None = None,
        clock: Callable[[], datetime] = utcnow,
        strict: bool = False,
    ):
        self._orders = orders
        self._events = events
        self._clock = clock
        self.strict = strict

    def can_transition(self, current: str, target: str) -> bool:
        if not self.strict:
            return True
        return target in STRICT_TRANSITIONS.get(current, frozenset())

    def transition(self, order_id: str, target: str) -> Transition:
        """Move an order to ``target``.

        Entering 'delivered' stamps ``actual_delivery_time``; no other status
        touches it.

        Args:
            order_id: Order to update.
            target: New status.

        Returns:
            Transition: Updated order and the status it left.

        Raises:
            ValidationFailed: Unknown status value.
            NotFound: Unknown order id.
            InvalidTransition: Strict mode rejected the move.
        """
        if target not in ORDER_STATUSES:
            raise ValidationFailed(f"Invalid status '{target}'", allowed=list(ORDER_STATUSES))

        order = self._orders.get(order_id)
        previous = order.status
        if not self.can_transition(previous, target):
            raise InvalidTransition(
                f"Cannot move order {order.order_number} from {previous} to {target}",
                current=previous,
                target=target,
            )
        if previous in TERMINAL_STATUSES and target != previous:
            logger.warning(f"Order leaving terminal status | order={order.order_number} | from={previous} | to={target}")

        changes: dict[str, Any] = {"status": target}
        if target == "delivered":
            changes["actual_delivery_time"] = self._clock()
        return self._apply(order_id, previous, changes)

    def confirm_payment(self, order_id: str, outcome: PaymentOutcome) -> Transition:
        """Apply a payment provider outcome to an order.

        'success' marks the order paid and confirmed, 'failed' marks the payment
        failed and leaves the status alone, 'pending' changes nothing.

        Raises:
            NotFound: Unknown order id.
            ValidationFailed: The order is already paid.
        """
        order = self._orders.get(order_id)
        if order.payment_status == "paid":
            raise ValidationFailed("Order is already paid")
        if outcome == "success":
            changes = {"payment_status": "paid", "status": "confirmed"}
        elif outcome == "failed":
            changes = {"payment_status": "failed"}
        else:
            return Transition(order=order, previous_status=order.status)
        logger.info(f"Payment outcome received | order={order.order_number} | outcome={outcome}")
        return self._apply(order_id, order.status, changes)

    def confirm_cash(self, order_id: str) -> Transition:
        """Confirm a cash-on-delivery order; payment stays pending until delivery."""
        order = self._orders.get(order_id)
        if order.payment_method != "cash":
            raise ValidationFailed(f"Order {order.order_number} is not a cash order")
        return self._apply(order_id, order.status, {"status": "confirmed"})

    def _apply(self, order_id: str, previous: OrderStatus, changes: dict[str, Any]) -> Transition:
        updated = self._orders.update(order_id, **changes)
        logger.info(
            f"Order status updated | order={updated.order_number} | from={previous} | to={updated.status} | "
            f"payment_status={updated.payment_status}"
        )
        if self._events is not None:
            self._events.publish_status_changed(updated, previous)
        return Transition(order=updated, previous_status=previous)
