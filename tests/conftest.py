"""Test fixtures for the order service and sync client tests."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from order_service.assembler import OrderAssembler
from order_service.catalog import CatalogSnapshot
from order_service.producer import OrderEventProducer
from order_service.schemas import DeliveryZone, Neighborhood, Product, Session, SizeVariation, Topping
from order_service.server import app, state
from order_service.state_machine import OrderStateMachine
from order_service.store import InMemoryCollection
from order_service.zones import ZoneRepository, ZoneResolver

FIXED_NOW = datetime(2024, 5, 17, 12, 30, tzinfo=timezone.utc)

ADMIN_TOKEN = "admin-token"
CUSTOMER_TOKEN = "customer-token"
OTHER_CUSTOMER_TOKEN = "other-customer-token"


def make_pizza() -> Product:
    """Base 2000, 'large' adds 500, two available toppings priced 100 and 150."""
    return Product(
        id="prod-pizza",
        name="Pizza Reine",
        description="Tomato, ham and mushrooms",
        base_price=2000,
        category="pizza",
        size_variations=[
            SizeVariation(size="small", name="Small", price=0),
            SizeVariation(size="large", name="Large", price=500),
            SizeVariation(size="xl", name="Extra large", price=900, available=False),
        ],
        toppings=[
            Topping(id="top-olives", name="Olives", price=100),
            Topping(id="top-cheese", name="Extra cheese", price=150),
            Topping(id="top-anchovies", name="Anchovies", price=300, available=False),
        ],
    )


def make_sold_out() -> Product:
    return Product(
        id="prod-soldout",
        name="Shawarma Royal",
        base_price=3000,
        category="shawarma",
        available=False,
        size_variations=[
            SizeVariation(size="medium", name="Medium", price=0),
            SizeVariation(size="large", name="Large", price=500, available=False),
        ],
    )


def make_zones() -> list[DeliveryZone]:
    """Zone X serves Douala/Akwa, zone Y serves Douala/Bonanjo; both list Douala."""
    return [
        DeliveryZone(
            id="zone-x",
            name="Zone X",
            cities=["Douala"],
            neighborhoods=[Neighborhood(name="Akwa", city="Douala")],
            delivery_fee=500,
            estimated_time=30,
        ),
        DeliveryZone(
            id="zone-y",
            name="Zone Y",
            cities=["Douala"],
            neighborhoods=[
                Neighborhood(name="Bonanjo", city="Douala"),
                Neighborhood(name="Deido", city="Douala", available=False),
            ],
            delivery_fee=1000,
            estimated_time=45,
        ),
    ]


def address(neighborhood: str = "Akwa", city: str = "Douala") -> dict:
    return {"street": "Rue Joss 12", "neighborhood": neighborhood, "city": city, "phone": "+237600000000"}


@pytest.fixture
def products():
    collection = InMemoryCollection("Product")
    collection.create(make_pizza())
    collection.create(make_sold_out())
    return collection


@pytest.fixture
def zone_records():
    collection = InMemoryCollection("Delivery zone", unique_fields=("name",))
    for zone in make_zones():
        collection.create(zone)
    return collection


@pytest.fixture
def zone_repository(zone_records):
    return ZoneRepository(zone_records)


@pytest.fixture
def resolver(zone_repository):
    return ZoneResolver(zone_repository)


@pytest.fixture
def orders():
    return InMemoryCollection("Order", unique_fields=("order_number",))


@pytest.fixture
def events(mocker):
    """A mocked event producer recording publish calls."""
    return mocker.MagicMock(spec=OrderEventProducer)


@pytest.fixture
def assembler(products, resolver, orders, events):
    return OrderAssembler(CatalogSnapshot(products), resolver, orders, events=events, clock=lambda: FIXED_NOW)


@pytest.fixture
def state_machine(orders, events):
    return OrderStateMachine(orders, events=events, clock=lambda: FIXED_NOW)


@pytest.fixture
def placed_order(assembler):
    """A pending cash order for 'cust-1' delivered to Douala/Akwa."""
    return assembler.create_order(
        "cust-1",
        [{"product_id": "prod-pizza", "quantity": 1, "size": "small"}],
        "cash",
        address(),
    )


@pytest.fixture
def service_state():
    """The server's module-level state, reset and loaded with test data."""
    state.reset()
    for product in (make_pizza(), make_sold_out()):
        state.products.create(product)
    for zone in make_zones():
        state.zone_records.create(zone)
    state.sessions.register(Session(user_id="admin-1", role="admin", token=ADMIN_TOKEN))
    state.sessions.register(Session(user_id="cust-1", role="customer", token=CUSTOMER_TOKEN))
    state.sessions.register(Session(user_id="cust-2", role="customer", token=OTHER_CUSTOMER_TOKEN))
    yield state
    state.reset()


@pytest.fixture
def test_client(service_state):
    """Create a test client for the FastAPI app."""
    return TestClient(app)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
