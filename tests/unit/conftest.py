import pytest

from src.adapter.services.payment_gateway import SandboxPaymentGateway
from src.adapter.services.shop_lock import InProcessShopLock
from src.app.use_cases.subscriptions.settings import LifecycleSettings
from tests.fixtures.factories import NOW
from tests.fixtures.fakes import (
    InMemoryShopRepository,
    InMemorySubscriptionRepository,
    make_uow,
)


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    return make_uow()


@pytest.fixture
def settings():
    return LifecycleSettings()


@pytest.fixture
def clock():
    """Fixed clock; tests move time by reassigning clock.now"""

    class FixedClock:
        def __init__(self):
            self.now = NOW

        def __call__(self):
            return self.now

    return FixedClock()


@pytest.fixture
def subscription_store():
    return InMemorySubscriptionRepository()


@pytest.fixture
def shop_store():
    return InMemoryShopRepository()


@pytest.fixture
def sandbox_gateway():
    return SandboxPaymentGateway()


@pytest.fixture
def shop_lock():
    return InProcessShopLock()
