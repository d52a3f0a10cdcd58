from datetime import date

import pytest

from pizza_bot.menu import MenuCatalog
from pizza_bot.rate_limiter import RateLimiter
from pizza_bot.schemas.orders import Customer, OrderItem, PaymentMethod, Topping
from pizza_bot.schemas.remote import RemoteResponse, RemoteStore
from pizza_bot.services.cache import InMemoryCacheStore, OrderRepository
from pizza_bot.services.order_manager import OrderManager

TODAY = date(2026, 10, 19)


def success_response(total=None, order_id=None, wait=None):
    order = {}
    if total is not None:
        order["Amounts"] = {"Customer": total}
    if order_id is not None:
        order["OrderID"] = order_id
    if wait is not None:
        order["EstimatedWaitMinutes"] = wait
    return RemoteResponse.model_validate({"Status": "Success", "StatusItems": [], "Order": order})


def failure_response(*items):
    return RemoteResponse.model_validate({"Status": "Failure", "StatusItems": list(items)})


def open_store(store_id="4336", distance=1.2):
    return RemoteStore.model_validate({
        "StoreID": store_id,
        "IsOnlineCapable": True,
        "IsDeliveryStore": True,
        "IsOpen": True,
        "ServiceIsOpen": {"Delivery": True},
        "MinDistance": distance,
    })


class FakeOrderApi:
    """In-memory stand-in for the remote ordering API that records calls."""

    def __init__(self):
        self.stores = [open_store()]
        self.validate_response = success_response()
        self.price_response = success_response(total=21.47)
        self.place_response = success_response(order_id="ORD-1001", wait="20-30")
        self.tracking = None
        self.calls = []
        self.requests = {}

    async def find_stores(self, street, city, region):
        self.calls.append("find_stores")
        self.requests["find_stores"] = (street, city, region)
        return self.stores

    async def validate_order(self, request):
        self.calls.append("validate_order")
        self.requests["validate_order"] = request
        return self.validate_response

    async def price_order(self, request):
        self.calls.append("price_order")
        self.requests["price_order"] = request
        return self.price_response

    async def place_order(self, request):
        self.calls.append("place_order")
        self.requests["place_order"] = request
        return self.place_response

    async def track_order(self, phone):
        self.calls.append("track_order")
        self.requests["track_order"] = phone
        return self.tracking


@pytest.fixture
def catalog():
    return MenuCatalog()


@pytest.fixture
def fake_api():
    return FakeOrderApi()


@pytest.fixture
def repository():
    return OrderRepository(InMemoryCacheStore())


@pytest.fixture
def rate_limiter():
    return RateLimiter(max_requests=10, time_window=60000)


@pytest.fixture
def manager(fake_api, repository, rate_limiter):
    return OrderManager(
        api=fake_api,
        repository=repository,
        rate_limiter=rate_limiter,
        remote_timeout=1.0,
        today=lambda: TODAY,
    )


@pytest.fixture
def customer():
    return Customer(
        name="Jo",
        phone="555-123-4567",
        email="a@b.com",
        address="12 A St, Springfield IL",
    )


@pytest.fixture
def item():
    return OrderItem(size="LARGE", crust="THIN", toppings=[], quantity=1)


@pytest.fixture
def pepperoni_item():
    return OrderItem(
        size="MEDIUM",
        crust="HAND_TOSSED",
        toppings=[Topping(code="PEPPERONI")],
        quantity=1,
    )


@pytest.fixture
def payment():
    return PaymentMethod(
        card_number="4111111111111111",
        expiry_date="12/27",
        cvv="123",
        postal_code="62701",
    )
