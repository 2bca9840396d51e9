"""Kafka producer for publishing order lifecycle events."""

from confluent_kafka import Producer

from .logger import kafka_logger as logger
from .schemas import Order, OrderEvent, OrderStatus

ORDER_CREATED_TOPIC = "orders.created"
STATUS_CHANGED_TOPIC = "orders.status_changed"


class OrderEventProducer:
    """Kafka producer for order lifecycle events.

    Events are keyed by order id so every event of one order lands on the same
    partition. Publishing is best effort: a failure is logged and never
    propagated to the operation that triggered it.

    Attributes:
        _producer: The underlying Kafka producer instance.
    """

    def __init__(self, bootstrap_servers: str):
        """Initialize the Kafka producer with the given bootstrap servers.

        Args:
            bootstrap_servers (str): Comma-separated list of Kafka broker addresses.
        """
        self._producer = Producer(
            {
                "bootstrap.servers": bootstrap_servers,
                "message.timeout.ms": 5000,
                "partitioner": "consistent_random",  # Same key → same partition
            }
        )

    @property
    def producer(self):
        """Get the underlying Kafka producer instance.

        Returns:
            Producer: The Kafka producer instance.
        """
        return self._producer

    def _delivery_callback(self, err, msg):
        """Callback function for message delivery reports.

        Args:
            err: Error that occurred during message delivery, if any.
            msg: Message that was delivered or failed.
        """
        if err:
            logger.error(f"Message failed delivery: {err} | topic={msg.topic()} | key={msg.key()}")
        else:
            logger.debug(f"Message delivered to {msg.topic()} [p:{msg.partition()}] | offset={msg.offset()}")

    def publish_order_created(self, order: Order) -> None:
        """Publish an ``order_created`` event for a freshly persisted order."""
        self._publish(ORDER_CREATED_TOPIC, _event("order_created", order))

    def publish_status_changed(self, order: Order, previous_status: OrderStatus) -> None:
        """Publish a ``status_changed`` event after a transition."""
        self._publish(STATUS_CHANGED_TOPIC, _event("status_changed", order, previous_status))

    def _publish(self, topic: str, event: OrderEvent) -> None:
        try:
            self._producer.produce(
                topic=topic,
                key=event.order_id.encode("utf-8"),
                value=event.model_dump_json(),
                on_delivery=self._delivery_callback,
            )
            self._producer.poll(0)  # Trigger delivery callbacks
        except BufferError:
            logger.warning(f"Producer buffer full, dropping event | topic={topic} | order={event.order_number}")
            self._producer.flush(1.0)
        except Exception as e:
            logger.error(f"Failed to publish order event | topic={topic} | order={event.order_number} | error={e}")

    def close(self, timeout: float = 10.0) -> None:
        """Flush pending events before shutdown."""
        remaining = self._producer.flush(timeout)
        if remaining > 0:
            logger.warning(f"{remaining} order events still pending delivery")


def _event(event_type: str, order: Order, previous_status: OrderStatus | None = None) -> OrderEvent:
    return OrderEvent(
        event_type=event_type,
        order_id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status,
        previous_status=previous_status,
        payment_status=order.payment_status,
        total=order.total,
    )
