"""Unit tests for subscription read paths and the payment webhook

Tests cover:
- GetSubscription / GetSubscriptionById
- GetSubscriptionStats
- HandlePaymentNotification
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.subscriptions.check_payment_status import CheckPaymentStatus
from src.app.use_cases.subscriptions.get_subscription import GetSubscription, GetSubscriptionById
from src.app.use_cases.subscriptions.get_subscription_stats import GetSubscriptionStats
from src.app.use_cases.subscriptions.handle_payment_notification import HandlePaymentNotification
from src.domain.shop import ShopStatus
from src.domain.subscription import SubscriptionPlan, SubscriptionStatus
from src.domain.subscription_lifecycle import PaymentOutcome
from tests.fixtures.factories import NOW, make_shop, make_subscription


@pytest.mark.asyncio
class TestGetSubscription:
    async def test_returns_newest_subscription_of_shop(self, subscription_store):
        subscription_store.add(
            make_subscription(
                subscription_id=1, status=SubscriptionStatus.EXPIRED, created_at=NOW - timedelta(days=40)
            )
        )
        subscription_store.add(make_subscription(subscription_id=2, status=SubscriptionStatus.ACTIVE))

        result = await GetSubscription(subscription_store).execute(7)

        assert result.is_ok()
        assert result.value.id == 2
        assert result.value.status == "active"

    async def test_shop_without_subscription_is_not_found(self, subscription_store):
        result = await GetSubscription(subscription_store).execute(7)

        assert result.is_err()
        assert result.error.code == "SUBSCRIPTION_NOT_FOUND"

    async def test_storage_error_propagates(self):
        """Storage failures are never reported as 'no subscription'"""
        repo = MagicMock()
        repo.get_current_by_shop_id = AsyncMock(side_effect=ConnectionError("db down"))

        with pytest.raises(ConnectionError):
            await GetSubscription(repo).execute(7)

    async def test_get_by_id(self, subscription_store):
        subscription_store.add(make_subscription(subscription_id=3))

        found = await GetSubscriptionById(subscription_store).execute(3)
        missing = await GetSubscriptionById(subscription_store).execute(4)

        assert found.value.id == 3
        assert missing.error.code == "SUBSCRIPTION_NOT_FOUND"


@pytest.mark.asyncio
class TestGetSubscriptionStats:
    async def test_counts_and_revenue(self, subscription_store, settings, clock):
        """
        Given: Active, failed, pending and cancelled subscriptions
        When: Stats are aggregated
        Then: Revenue counts active rows and cancelled rows still inside their paid period
        """
        subscription_store.add(make_subscription(subscription_id=1, shop_id=1, status=SubscriptionStatus.ACTIVE))
        subscription_store.add(
            make_subscription(
                subscription_id=2, shop_id=2, status=SubscriptionStatus.ACTIVE, plan=SubscriptionPlan.WHOLESALER
            )
        )
        subscription_store.add(make_subscription(subscription_id=3, shop_id=3, status=SubscriptionStatus.FAILED))
        subscription_store.add(make_subscription(subscription_id=4, shop_id=4, status=SubscriptionStatus.PENDING))
        subscription_store.add(
            make_subscription(
                subscription_id=5,
                shop_id=5,
                status=SubscriptionStatus.CANCELLED,
                auto_renew=False,
                end_date=NOW + timedelta(days=10),
            )
        )
        subscription_store.add(
            make_subscription(
                subscription_id=6,
                shop_id=6,
                status=SubscriptionStatus.CANCELLED,
                auto_renew=False,
                end_date=NOW - timedelta(hours=1),
            )
        )

        result = await GetSubscriptionStats(subscription_store, settings, clock=clock).execute()

        stats = result.value
        assert stats.total == 6
        assert stats.by_status == {
            "pending": 1,
            "active": 2,
            "expired": 0,
            "failed": 1,
            "cancelled": 2,
        }
        assert stats.monthly_recurring_revenue == Decimal("39997")
        assert stats.currency == "ARS"

    async def test_empty_store(self, subscription_store):
        result = await GetSubscriptionStats(subscription_store).execute()

        assert result.value.total == 0
        assert result.value.monthly_recurring_revenue == Decimal("0")

    async def test_storage_error_is_reported(self):
        repo = MagicMock()
        repo.count_by_status = AsyncMock(side_effect=Exception("database unavailable"))

        result = await GetSubscriptionStats(repo).execute()

        assert result.is_err()
        assert result.error.code == "SUBSCRIPTION_STATS_FAILED"


@pytest.fixture
def notification_use_case(mock_uow, subscription_store, shop_store, sandbox_gateway, shop_lock, settings, clock):
    check = CheckPaymentStatus(
        mock_uow, subscription_store, shop_store, sandbox_gateway, shop_lock, settings=settings, clock=clock
    )
    return HandlePaymentNotification(subscription_store, check)


@pytest.mark.asyncio
class TestHandlePaymentNotification:
    async def test_notification_reconciles_subscription(
        self, notification_use_case, subscription_store, shop_store, sandbox_gateway
    ):
        shop_store.add(make_shop(7))
        subscription_store.add(make_subscription(session_ref="sess-9"))
        sandbox_gateway.set_outcome("sess-9", PaymentOutcome.APPROVED)

        result = await notification_use_case.execute("sess-9")

        assert result.is_ok()
        assert result.value.matched is True
        assert result.value.status == "active"
        assert shop_store.status_of(7) == ShopStatus.ACTIVE

    async def test_unknown_reference_is_ignored(self, notification_use_case, subscription_store):
        result = await notification_use_case.execute("no-such-session")

        assert result.is_ok()
        assert result.value.matched is False
        assert subscription_store.update_calls == 0

    async def test_repeated_notification_is_harmless(
        self, notification_use_case, subscription_store, shop_store, sandbox_gateway
    ):
        shop_store.add(make_shop(7))
        subscription_store.add(make_subscription(session_ref="sess-9"))
        sandbox_gateway.set_outcome("sess-9", PaymentOutcome.APPROVED)

        await notification_use_case.execute("sess-9")
        version = subscription_store.stored(1).version
        again = await notification_use_case.execute("sess-9")

        assert again.value.status == "active"
        assert subscription_store.stored(1).version == version
