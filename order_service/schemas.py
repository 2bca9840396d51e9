"""Pydantic models for catalog, delivery zones, orders and sessions.

All money amounts are integers in the currency's minor unit.
"""

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

OrderStatus = Literal[
    "pending",
    "confirmed",
    "preparing",
    "ready",
    "out_for_delivery",
    "delivered",
    "cancelled",
]
PaymentMethod = Literal["momo", "om", "cash", "card"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
PaymentOutcome = Literal["success", "failed", "pending"]
Role = Literal["admin", "customer"]

ORDER_STATUSES: tuple[str, ...] = (
    "pending",
    "confirmed",
    "preparing",
    "ready",
    "out_for_delivery",
    "delivered",
    "cancelled",
)


def new_id() -> str:
    """Generate a 24-character hexadecimal record identifier."""
    return uuid.uuid4().hex[:24]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    """Base for anything kept in the record store."""

    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# --------------------------------------------------------------------------- catalog


class SizeVariation(BaseModel):
    """One size a product can be ordered in.

    Attributes:
        size: Stable identifier sent by clients (e.g. 'medium').
        name: Display name.
        price: Amount added to the product base price.
        available: Whether this size can currently be ordered.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    size: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: int = Field(0, ge=0)
    available: bool = True


class Topping(BaseModel):
    """A topping attachable to one product."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=50)
    price: int = Field(..., ge=0)
    available: bool = True
    category: str | None = None
    description: str | None = Field(None, max_length=200)


class Product(Record):
    """A catalog product with its sizes and embedded toppings."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    base_price: int = Field(..., ge=0)
    size_variations: list[SizeVariation] = Field(..., min_length=1)
    category: str
    image: str | None = None
    toppings: list[Topping] = Field(default_factory=list)
    available: bool = True


class ProductFilter(BaseModel):
    """Filter accepted by the catalog listing."""

    category: str | None = None
    available_only: bool = False
    search: str | None = None


# --------------------------------------------------------------------------- delivery zones


class Neighborhood(BaseModel):
    """A deliverable neighborhood, scoped to one city inside one zone."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    available: bool = True


class DeliveryZone(Record):
    """A named delivery fee and time grouping.

    The same city may appear in several zones; only the neighborhood list
    decides which zone serves a given address.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2)
    cities: list[str] = Field(..., min_length=1)
    neighborhoods: list[Neighborhood] = Field(default_factory=list)
    delivery_fee: int = Field(500, ge=0)
    estimated_time: int = Field(30, ge=0, description="Estimated delivery time in minutes")
    available: bool = True


class ZoneCreate(BaseModel):
    """Payload for creating a delivery zone."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2)
    cities: list[str] = Field(..., min_length=1)
    neighborhoods: list[Neighborhood] = Field(default_factory=list)
    delivery_fee: int = Field(..., ge=0)
    estimated_time: int = Field(..., ge=0)
    available: bool = True


class ZoneUpdate(BaseModel):
    """Partial update of a delivery zone; unset fields are left untouched."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=2)
    cities: list[str] | None = Field(None, min_length=1)
    neighborhoods: list[Neighborhood] | None = None
    delivery_fee: int | None = Field(None, ge=0)
    estimated_time: int | None = Field(None, ge=0)
    available: bool | None = None


class FeeRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    city: str = Field(..., min_length=1)
    neighborhood: str = Field(..., min_length=1)


class FeeQuote(BaseModel):
    """Delivery fee resolved for one address."""

    delivery_fee: int
    estimated_time: int
    zone_name: str


# --------------------------------------------------------------------------- orders


class DeliveryAddress(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    street: str = Field(..., min_length=5)
    neighborhood: str = Field(..., min_length=1)
    city: str = Field(..., min_length=2)
    postal_code: str | None = None
    phone: str = Field(..., min_length=1)
    instructions: str | None = None


class CartItem(BaseModel):
    """One line of a cart as sent by the storefront."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    size: str = Field(..., min_length=1)
    selected_toppings: list[str] = Field(default_factory=list, description="Topping ids of the product")
    customizations: str | None = Field(None, max_length=200)


class OrderRequest(BaseModel):
    """Cart submitted for order creation."""

    items: list[CartItem] = Field(..., min_length=1, description="At least one item required")
    payment_method: PaymentMethod
    delivery_address: DeliveryAddress

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": [{"product_id": "a1b2c3", "quantity": 2, "size": "medium", "selected_toppings": []}],
                "payment_method": "cash",
                "delivery_address": {
                    "street": "Rue Joss 12",
                    "neighborhood": "Akwa",
                    "city": "Douala",
                    "phone": "+237600000000",
                },
            }
        }
    )


class SelectedTopping(BaseModel):
    """Topping name and price captured at order time."""

    name: str
    price: int


class OrderItem(BaseModel):
    """Immutable order line; product data is snapshotted when the order is placed."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    product_name: str
    product_price: int
    quantity: int = Field(..., ge=1)
    size: str
    selected_toppings: list[SelectedTopping] = Field(default_factory=list)
    customizations: str = ""
    item_total: int


class Order(Record):
    """A placed order.

    Attributes:
        user_id: Owning customer.
        order_number: Human readable number, unique across all orders.
        items: Priced lines.
        subtotal: Sum of the line totals.
        delivery_fee: Fee of the zone serving the delivery address.
        total: subtotal + delivery_fee.
        status: Operational status.
        payment_method: How the customer pays.
        payment_status: Payment progress, independent of the status.
        delivery_address: Where the order goes.
        estimated_delivery_time: Placement time plus the zone estimate.
        actual_delivery_time: Set when the order enters 'delivered'.
    """

    user_id: str
    order_number: str
    items: list[OrderItem] = Field(..., min_length=1)
    subtotal: int = Field(..., ge=0)
    delivery_fee: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    status: OrderStatus = "pending"
    payment_method: PaymentMethod
    payment_status: PaymentStatus = "pending"
    delivery_address: DeliveryAddress
    estimated_delivery_time: datetime | None = None
    actual_delivery_time: datetime | None = None


class StatusUpdate(BaseModel):
    status: OrderStatus


class PaymentConfirmation(BaseModel):
    """Opaque outcome reported by a payment provider."""

    outcome: PaymentOutcome
    reference: str | None = Field(None, description="Provider transaction reference")


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next_page: bool
    has_prev_page: bool


class OrderEvent(BaseModel):
    """Order lifecycle event published to Kafka."""

    event_type: Literal["order_created", "status_changed"]
    order_id: str
    order_number: str
    user_id: str
    status: OrderStatus
    previous_status: OrderStatus | None = None
    payment_status: PaymentStatus
    total: int
    occurred_at: datetime = Field(default_factory=utcnow)


# --------------------------------------------------------------------------- sessions


class Session(BaseModel):
    """An authenticated session issued by the external auth collaborator."""

    user_id: str = Field(..., min_length=1)
    role: Role = "customer"
    token: str = Field(..., min_length=1)

    @property
    def is_staff(self) -> bool:
        return self.role == "admin"
