"""FastAPI server implementation for the Order Service."""

import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from confluent_kafka.admin import AdminClient
from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .assembler import OrderAssembler
from .auth import SessionRegistry, parse_bearer, require_owner_or_staff, require_staff
from .catalog import CatalogSnapshot
from .config import Settings
from .errors import NotFound, NotServiceable, OrderingError
from .logger import logger
from .producer import OrderEventProducer
from .schemas import (
    DeliveryZone,
    FeeRequest,
    Order,
    OrderRequest,
    OrderStatus,
    Pagination,
    PaymentConfirmation,
    Product,
    ProductFilter,
    Session,
    StatusUpdate,
    ZoneCreate,
    ZoneUpdate,
)
from .seed import demo_products, demo_sessions, demo_zones
from .state_machine import OrderStateMachine
from .store import InMemoryCollection
from .zones import ZoneRepository, ZoneResolver

PUBLIC_ZONE_FIELDS = {"id", "name", "cities", "neighborhoods", "delivery_fee", "estimated_time"}


class OrderServiceState:
    """Class to manage order service state."""

    def __init__(self, settings: Settings | None = None):
        """Wire the record store, resolvers and the state machine together.

        Args:
            settings: Configuration; read from the environment when omitted.
        """
        self.settings = settings or Settings()
        self.products: InMemoryCollection[Product] = InMemoryCollection("Product")
        self.zone_records: InMemoryCollection[DeliveryZone] = InMemoryCollection(
            "Delivery zone", unique_fields=("name",)
        )
        self.orders: InMemoryCollection[Order] = InMemoryCollection("Order", unique_fields=("order_number",))
        self.sessions = SessionRegistry()

        self.producer: OrderEventProducer | None = None
        if self.settings.events_enabled:
            self.producer = OrderEventProducer(self.settings.kafka_bootstrap_servers)
            logger.info(f"Order events enabled | bootstrap_servers={self.settings.kafka_bootstrap_servers}")

        self.catalog = CatalogSnapshot(self.products)
        self.zone_repository = ZoneRepository(self.zone_records)
        self.zones = ZoneResolver(self.zone_repository)
        self.assembler = OrderAssembler(
            self.catalog,
            self.zones,
            self.orders,
            events=self.producer,
            max_attempts=self.settings.order_number_max_attempts,
        )
        self.state_machine = OrderStateMachine(
            self.orders, events=self.producer, strict=self.settings.strict_transitions
        )

    def load_demo_data(self) -> None:
        """Populate the store with the demo catalog, zones and sessions."""
        for product in demo_products():
            self.products.create(product)
        for zone in demo_zones():
            self.zone_records.create(zone)
        for session in demo_sessions():
            self.sessions.register(session)
        logger.info(
            f"Demo data loaded | products={self.products.count()} | zones={self.zone_records.count()} | "
            f"sessions={len(demo_sessions())}"
        )

    def reset(self) -> None:
        """Drop every record and session."""
        for collection in (self.products, self.zone_records, self.orders):
            collection.clear()
        self.sessions.clear()


state = OrderServiceState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the lifecycle of the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    if state.settings.seed_demo_data:
        state.load_demo_data()
    yield
    logger.info("Shutting down order service...")
    if state.producer:
        state.producer.close()
    logger.info("Shutdown complete")


app = FastAPI(title="Order Service", lifespan=lifespan)

health_router = APIRouter(tags=["health"])
products_router = APIRouter(prefix="/api/products", tags=["products"])
orders_router = APIRouter(prefix="/api/orders", tags=["orders"])
payments_router = APIRouter(prefix="/api/payments", tags=["payments"])
zones_router = APIRouter(prefix="/api/delivery-zones", tags=["delivery-zones"])


# --------------------------------------------------------------------------- helpers


def current_session(authorization: str | None = Header(None)) -> Session:
    """Resolve the bearer token of the request to a session."""
    return state.sessions.resolve(parse_bearer(authorization))


def staff_session(session: Session = Depends(current_session)) -> Session:
    return require_staff(session)


def _ok(message: str | None = None, **data: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": True}
    if message:
        payload["message"] = message
    payload["data"] = jsonable_encoder(data)
    return payload


def _paginate(orders: list[Order], page: int, limit: int) -> dict[str, Any]:
    orders = sorted(orders, key=lambda o: o.created_at, reverse=True)
    total = len(orders)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit
    return {
        "orders": [o.model_dump(mode="json") for o in orders[start : start + limit]],
        "pagination": Pagination(
            current_page=page,
            total_pages=total_pages,
            total_orders=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        ),
    }


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError):
    """Render domain errors in the API envelope."""
    logger.info(f"Request rejected | path={request.url.path} | status={exc.status_code} | error={exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400 Validation failed."""
    errors = [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in exc.errors()]
    logger.info(f"Request validation failed | path={request.url.path} | errors={len(errors)}")
    return JSONResponse(status_code=400, content={"success": False, "message": "Validation failed", "errors": errors})


# --------------------------------------------------------------------------- health


@health_router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@health_router.get("/health/ready")
async def readiness_check():
    """Check if the service is ready to accept traffic.

    Returns:
        dict: Service readiness status and Kafka connection status.
    """
    if not state.settings.events_enabled:
        return {"status": "ready", "kafka": "disabled"}
    kafka_ok = _check_kafka_connection()
    return {"status": "ready" if kafka_ok else "not_ready", "kafka": "connected" if kafka_ok else "disconnected"}


def _check_kafka_connection() -> bool:
    """Check if Kafka connection is available.

    Returns:
        bool: True if Kafka is accessible, False otherwise.
    """
    try:
        admin = AdminClient({"bootstrap.servers": state.settings.kafka_bootstrap_servers})
        return bool(admin.list_topics(timeout=5))
    except Exception as e:
        logger.error(f"Kafka connection failed: {e}")
        return False


# --------------------------------------------------------------------------- catalog


@products_router.get("")
async def list_products(category: str | None = None, available_only: bool = False, search: str | None = None):
    """List catalog products, optionally filtered."""
    products = state.catalog.list_products(
        ProductFilter(category=category, available_only=available_only, search=search)
    )
    return _ok(products=products)


@products_router.get("/{product_id}")
async def get_product(product_id: str):
    product = state.catalog.get_product(product_id)
    if product is None:
        raise NotFound("Product not found", id=product_id)
    return _ok(product=product)


# --------------------------------------------------------------------------- orders


@orders_router.post("", status_code=201)
async def create_order(request: OrderRequest, session: Session = Depends(current_session)):
    """Create a new order for the session's user.

    Args:
        request: Cart, payment method and delivery address.

    Returns:
        dict: The created order.
    """
    order = state.assembler.create_order(
        session.user_id, request.items, request.payment_method, request.delivery_address
    )
    return _ok("Order created successfully", order=order)


@orders_router.get("")
async def list_own_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status: OrderStatus | None = None,
    session: Session = Depends(current_session),
):
    """List the session user's orders, newest first."""
    orders = state.orders.find(lambda o: o.user_id == session.user_id and (status is None or o.status == status))
    return _ok(**_paginate(orders, page, limit))


@orders_router.get("/admin/all")
async def list_all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: OrderStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    session: Session = Depends(staff_session),
):
    """List every order for staff, newest first, with optional status and date filters."""
    start, end = _as_utc(start_date), _as_utc(end_date)

    def matches(order: Order) -> bool:
        if status is not None and order.status != status:
            return False
        if start is not None and order.created_at < start:
            return False
        if end is not None and order.created_at > end:
            return False
        return True

    return _ok(**_paginate(state.orders.find(matches), page, limit))


@orders_router.get("/{order_id}")
async def get_order(order_id: str, session: Session = Depends(current_session)):
    order = state.orders.get(order_id)
    require_owner_or_staff(session, order)
    return _ok(order=order)


@orders_router.put("/{order_id}/status")
async def update_order_status(order_id: str, update: StatusUpdate, session: Session = Depends(staff_session)):
    """Move an order to a new status (staff only)."""
    transition = state.state_machine.transition(order_id, update.status)
    return _ok(
        "Order status updated successfully",
        order=transition.order,
        previous_status=transition.previous_status,
    )


# --------------------------------------------------------------------------- payments


@payments_router.post("/{order_id}/confirm")
async def confirm_payment(
    order_id: str, confirmation: PaymentConfirmation, session: Session = Depends(current_session)
):
    """Apply the payment provider's outcome for an order."""
    require_owner_or_staff(session, state.orders.get(order_id))
    transition = state.state_machine.confirm_payment(order_id, confirmation.outcome)
    if confirmation.reference:
        logger.info(f"Payment reference recorded | order_id={order_id} | reference={confirmation.reference}")
    return _ok("Payment outcome applied", order=transition.order)


@payments_router.post("/{order_id}/cash")
async def confirm_cash(order_id: str, session: Session = Depends(current_session)):
    """Confirm a cash-on-delivery order; it is paid on delivery."""
    require_owner_or_staff(session, state.orders.get(order_id))
    transition = state.state_machine.confirm_cash(order_id)
    return _ok("Cash on delivery order confirmed", order=transition.order)


# --------------------------------------------------------------------------- delivery zones


@zones_router.get("/cities")
async def list_cities():
    return _ok(cities=state.zones.list_cities())


@zones_router.get("/neighborhoods/{city}")
async def list_neighborhoods(city: str):
    return _ok(neighborhoods=state.zones.list_neighborhoods(city))


@zones_router.get("")
async def list_zones():
    """List available delivery zones (public view)."""
    return _ok(zones=[z.model_dump(mode="json", include=PUBLIC_ZONE_FIELDS) for z in state.zones.list_zones()])


@zones_router.post("/calculate-fee")
async def calculate_fee(request: FeeRequest):
    """Resolve the delivery fee for a city and neighborhood."""
    try:
        quote = state.zones.resolve_fee(request.city, request.neighborhood)
    except NotServiceable as e:
        raise NotServiceable("Delivery not available for this location", status_code=404, **e.details) from e
    return _ok(**quote.model_dump())


@zones_router.get("/admin/all")
async def list_all_zones(session: Session = Depends(staff_session)):
    return _ok(zones=state.zone_repository.list_all())


@zones_router.post("", status_code=201)
async def create_zone(payload: ZoneCreate, session: Session = Depends(staff_session)):
    zone = state.zone_repository.create(payload)
    return _ok("Delivery zone created successfully", zone=zone)


@zones_router.put("/{zone_id}")
async def update_zone(zone_id: str, payload: ZoneUpdate, session: Session = Depends(staff_session)):
    zone = state.zone_repository.update(zone_id, payload)
    return _ok("Delivery zone updated successfully", zone=zone)


@zones_router.delete("/{zone_id}")
async def delete_zone(zone_id: str, session: Session = Depends(staff_session)):
    state.zone_repository.delete(zone_id)
    return {"success": True, "message": "Delivery zone deleted successfully"}


for router in (health_router, products_router, orders_router, payments_router, zones_router):
    app.include_router(router)
logger.info("API routers mounted.")
