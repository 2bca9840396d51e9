"""Order assembly: cart validation, pricing and persistence."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from .catalog import CatalogSnapshot
from .errors import DuplicateKey, ProductUnavailable, SizeUnavailable, ValidationFailed
from .logger import logger
from .producer import OrderEventProducer
from .schemas import (
    CartItem,
    Order,
    OrderItem,
    OrderRequest,
    Product,
    SelectedTopping,
    SizeVariation,
    utcnow,
)
from .store import RecordCollection
from .zones import ZoneResolver

ORDER_NUMBER_PREFIX = "SH"


def generate_order_number(order_count: int, now: datetime) -> str:
    """Build a human readable order number.

    The number is the prefix, the last six digits of the epoch-millisecond
    clock and the next order count padded to three digits, e.g. ``SH482113007``.

    Args:
        order_count: Number of orders already stored.
        now: Current time.

    Returns:
        str: The order number.
    """
    millis = str(int(now.timestamp() * 1000))
    return f"{ORDER_NUMBER_PREFIX}{millis[-6:]}{order_count + 1:03d}"


def select_size(product: Product, size: str) -> SizeVariation:
    """Find the requested size among the product's variations.

    Raises:
        SizeUnavailable: If the size does not exist or is switched off. The
            message lists the sizes that can be ordered right now.
    """
    offered = [sv.size for sv in product.size_variations if sv.available]
    variation = next((sv for sv in product.size_variations if sv.size == size), None)
    if variation is None:
        raise SizeUnavailable(
            f'Size "{size}" not found for {product.name}. Available sizes: {", ".join(offered) or "none"}',
            product_id=product.id,
            size=size,
            available_sizes=offered,
        )
    if not variation.available:
        raise SizeUnavailable(
            f"Size {size} is not currently available for {product.name}. "
            f'Available sizes: {", ".join(offered) or "none"}',
            product_id=product.id,
            size=size,
            available_sizes=offered,
        )
    return variation


def select_toppings(product: Product, topping_ids: list[str]) -> list[SelectedTopping]:
    """Capture the requested toppings that exist on the product and are available.

    Unknown or unavailable toppings are dropped without error.
    """
    by_id = {t.id: t for t in product.toppings}
    selected = []
    for topping_id in topping_ids:
        topping = by_id.get(topping_id)
        if topping is not None and topping.available:
            selected.append(SelectedTopping(name=topping.name, price=topping.price))
    return selected


def price_item(product: Product, item: CartItem) -> OrderItem:
    """Price one cart line against the product.

    line total = (base price + size delta + available toppings) x quantity
    """
    variation = select_size(product, item.size)
    if not product.available:
        raise ProductUnavailable(f"Product {product.name} is not available", product_id=product.id)
    toppings = select_toppings(product, item.selected_toppings)
    unit_price = product.base_price + variation.price + sum(t.price for t in toppings)
    return OrderItem(
        product_id=product.id,
        product_name=product.name,
        product_price=product.base_price,
        quantity=item.quantity,
        size=item.size,
        selected_toppings=toppings,
        customizations=item.customizations or "",
        item_total=unit_price * item.quantity,
    )


class OrderAssembler:
    """Turns a cart into a priced, persisted order.

    Every validation failure aborts the whole operation before anything is
    written, so a partial order is never stored.
    """

    def __init__(
        self,
        catalog: CatalogSnapshot,
        zones: ZoneResolver,
        orders: RecordCollection[Order],
        events: OrderEventProducer | None = None,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 5,
    ):
        self._catalog = catalog
        self._zones = zones
        self._orders = orders
        self._events = events
        self._clock = clock
        self._max_attempts = max(1, max_attempts)

    def create_order(
        self,
        user_id: str,
        items: list[CartItem | dict[str, Any]],
        payment_method: str,
        delivery_address: Any,
    ) -> Order:
        """Validate, price and persist an order.

        Args:
            user_id: Owner of the order.
            items: Cart lines (models or plain dicts).
            payment_method: One of momo, om, cash, card.
            delivery_address: Address model or dict.

        Returns:
            Order: The stored order, status and payment status 'pending'.

        Raises:
            ValidationFailed: Malformed request.
            ProductUnavailable: Unknown or unavailable product.
            SizeUnavailable: Unknown or unavailable size.
            NotServiceable: No zone delivers to the address.
        """
        request = self._parse_request(items, payment_method, delivery_address)

        order_items = []
        for item in request.items:
            product = self._catalog.get_product(item.product_id)
            if product is None:
                raise ProductUnavailable(f"Product with ID {item.product_id} not found", product_id=item.product_id)
            order_items.append(price_item(product, item))
        subtotal = sum(line.item_total for line in order_items)

        address = request.delivery_address
        quote = self._zones.resolve_fee(address.city, address.neighborhood)

        now = self._clock()
        order = self._persist(
            user_id=user_id,
            items=order_items,
            subtotal=subtotal,
            delivery_fee=quote.delivery_fee,
            total=subtotal + quote.delivery_fee,
            payment_method=request.payment_method,
            delivery_address=address,
            estimated_delivery_time=now + timedelta(minutes=quote.estimated_time),
            created_at=now,
            updated_at=now,
        )
        logger.info(
            f"Order created | order={order.order_number} | user={user_id} | items={len(order_items)} | "
            f"subtotal={subtotal} | delivery_fee={order.delivery_fee} | zone={quote.zone_name} | total={order.total}"
        )
        if self._events is not None:
            self._events.publish_order_created(order)
        return order

    def _parse_request(self, items, payment_method, delivery_address) -> OrderRequest:
        try:
            return OrderRequest.model_validate(
                {"items": items, "payment_method": payment_method, "delivery_address": delivery_address}
            )
        except ValidationError as e:
            errors = [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()]
            raise ValidationFailed("Validation failed", errors=errors) from e

    def _persist(self, **fields: Any) -> Order:
        # Order numbers are only practically unique; regenerate on a clash.
        for attempt in range(self._max_attempts):
            number = generate_order_number(self._orders.count() + attempt, self._clock())
            try:
                return self._orders.create(Order(order_number=number, **fields))
            except DuplicateKey:
                logger.warning(f"Order number collision, regenerating | order_number={number} | attempt={attempt + 1}")
        raise DuplicateKey("Could not generate a unique order number", field="order_number")
