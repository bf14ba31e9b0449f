import os

import pytest

os.environ.setdefault("ENV_MODE", "development")
os.environ.setdefault("ORDER_FETCH_LATENCY_SECONDS", "0")
os.environ.setdefault("SUBMISSION_LATENCY_SECONDS", "0")
os.environ.setdefault("SUBMISSION_FAILURE_RATE", "0")
os.environ.setdefault("TRACKING_INTERVAL_SECONDS", "60")

from storefront.catalog import get_dish  # noqa: E402
from storefront.core.clock import ManualScheduler  # noqa: E402
from storefront.core.config import get_settings  # noqa: E402
from storefront.models import Dish, OrderDetails  # noqa: E402
from storefront.services.cart import CartStore  # noqa: E402
from storefront.services.orders import MockOrderSource, reset_order_source  # noqa: E402
from storefront.services.submission import (  # noqa: E402
    MockOrderSubmissionService,
    reset_submission_service,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_cached_services():
    get_settings.cache_clear()
    reset_order_source()
    reset_submission_service()
    yield
    get_settings.cache_clear()
    reset_order_source()
    reset_submission_service()


@pytest.fixture
def steak() -> Dish:
    return get_dish("d3")


@pytest.fixture
def risotto() -> Dish:
    return get_dish("d5")


@pytest.fixture
def cart() -> CartStore:
    return CartStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def order_source() -> MockOrderSource:
    return MockOrderSource(latency=0)


@pytest.fixture
def submission_service(order_source) -> MockOrderSubmissionService:
    return MockOrderSubmissionService(latency=0, order_source=order_source)


@pytest.fixture
def sample_order() -> OrderDetails:
    return OrderDetails(
        order_id="ORD-TEST0001",
        restaurant_name="The Gourmet Place",
        estimated_delivery="Approximately 35-45 minutes",
        delivery_address="1 Test Lane, Foodville",
        items=(("Truffle Risotto", 1),),
    )
