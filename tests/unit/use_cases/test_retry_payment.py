"""Unit tests for RetryPayment use case

Tests cover:
- Retry consumes one attempt and issues a fresh session
- Retry budget exhaustion
- Already resolved and invalid states
- Session reissue for pending rows left without one
- Gateway outage consumes nothing
"""

import pytest
from datetime import timedelta

from src.app.use_cases.subscriptions.check_payment_status import CheckPaymentStatus
from src.app.use_cases.subscriptions.create_subscription import CreateSubscription
from src.app.use_cases.subscriptions.dtos import CreateSubscriptionCommandDTO
from src.app.use_cases.subscriptions.retry_payment import RetryPayment
from src.domain.shop import ShopStatus
from src.domain.subscription import SubscriptionPlan, SubscriptionStatus
from src.domain.subscription_lifecycle import PaymentOutcome
from tests.fixtures.factories import NOW, make_shop, make_subscription


@pytest.fixture
def use_case_args(mock_uow, subscription_store, shop_store, sandbox_gateway, shop_lock, settings, clock):
    shop_store.add(make_shop(7))
    return dict(
        uow=mock_uow,
        subscription_repo=subscription_store,
        shop_repo=shop_store,
        gateway=sandbox_gateway,
        shop_lock=shop_lock,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def retry_use_case(use_case_args):
    return RetryPayment(**use_case_args)


@pytest.mark.asyncio
class TestRetryPaymentSuccess:
    async def test_retry_decrements_attempts_and_issues_new_session(
        self, retry_use_case, subscription_store, sandbox_gateway, mock_uow
    ):
        """
        Given: Failed subscription with 3 attempts remaining
        When: Payment is retried
        Then: Pending again, 2 attempts remaining, new session reference and URL
        """
        subscription_store.add(
            make_subscription(status=SubscriptionStatus.FAILED, session_ref="old-session")
        )

        result = await retry_use_case.execute(1)

        assert result.is_ok()
        response = result.value
        assert response.subscription.status == "pending"
        assert response.subscription.attempts_remaining == 2
        assert response.init_point is not None
        stored = subscription_store.stored(1)
        assert stored.payment_session_ref not in (None, "old-session")
        assert stored.payment_session_ref in response.init_point
        assert sandbox_gateway.sessions_created == 1
        mock_uow.commit.assert_called_once()

    async def test_pending_without_session_gets_one_without_consuming_attempt(
        self, retry_use_case, subscription_store
    ):
        subscription_store.add(make_subscription(session_ref=None, attempts_remaining=3))

        result = await retry_use_case.execute(1)

        assert result.is_ok()
        assert result.value.init_point is not None
        assert result.value.subscription.attempts_remaining == 3
        assert subscription_store.stored(1).payment_session_ref is not None

    @pytest.mark.parametrize("status", [SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED])
    async def test_already_resolved_returns_without_url(
        self, retry_use_case, subscription_store, sandbox_gateway, status
    ):
        subscription_store.add(make_subscription(status=status))

        result = await retry_use_case.execute(1)

        assert result.is_ok()
        assert result.value.init_point is None
        assert result.value.subscription.status == status.value
        assert sandbox_gateway.sessions_created == 0
        assert subscription_store.update_calls == 0


@pytest.mark.asyncio
class TestRetryPaymentRejected:
    async def test_exhausted_budget(self, retry_use_case, subscription_store, mock_uow):
        subscription_store.add(
            make_subscription(status=SubscriptionStatus.FAILED, attempts_remaining=0)
        )

        result = await retry_use_case.execute(1)

        assert result.is_err()
        assert result.error.code == "RETRY_EXHAUSTED"
        stored = subscription_store.stored(1)
        assert stored.status == SubscriptionStatus.FAILED
        assert stored.attempts_remaining == 0
        mock_uow.commit.assert_not_called()

    @pytest.mark.parametrize("status", [SubscriptionStatus.PENDING, SubscriptionStatus.EXPIRED])
    async def test_invalid_state(self, retry_use_case, subscription_store, status):
        subscription_store.add(make_subscription(status=status, session_ref="sess-1"))

        result = await retry_use_case.execute(1)

        assert result.is_err()
        assert result.error.code == "INVALID_STATE"

    async def test_replaced_subscription_is_not_retried(
        self, retry_use_case, subscription_store, sandbox_gateway
    ):
        """
        Given: A failed subscription the shop replaced with a newer one
        When: The old subscription is retried
        Then: INVALID_STATE and no session is opened
        """
        subscription_store.add(
            make_subscription(subscription_id=1, status=SubscriptionStatus.FAILED, created_at=NOW - timedelta(days=2))
        )
        subscription_store.add(make_subscription(subscription_id=2, session_ref="sess-2"))

        result = await retry_use_case.execute(1)

        assert result.is_err()
        assert result.error.code == "INVALID_STATE"
        assert subscription_store.stored(1).attempts_remaining == 3
        assert sandbox_gateway.sessions_created == 0

    async def test_unknown_subscription(self, retry_use_case):
        result = await retry_use_case.execute(12)

        assert result.is_err()
        assert result.error.code == "SUBSCRIPTION_NOT_FOUND"

    async def test_gateway_outage_consumes_nothing(
        self, retry_use_case, subscription_store, sandbox_gateway
    ):
        subscription_store.add(
            make_subscription(status=SubscriptionStatus.FAILED, attempts_remaining=2)
        )
        sandbox_gateway.set_available(False)

        result = await retry_use_case.execute(1)

        assert result.is_ok()
        assert result.value.init_point is None
        assert "try again later" in result.value.message
        stored = subscription_store.stored(1)
        assert stored.status == SubscriptionStatus.FAILED
        assert stored.attempts_remaining == 2


@pytest.mark.asyncio
class TestRetryBudgetScenario:
    async def test_three_declined_retries_then_exhausted(
        self, use_case_args, subscription_store, shop_store, sandbox_gateway
    ):
        """
        Given: A new subscription whose every payment is declined
        When: The payment is retried after each decline
        Then: Three retries are accepted (3 -> 0) and the fourth is RETRY_EXHAUSTED
        """
        create = CreateSubscription(**use_case_args)
        check = CheckPaymentStatus(**use_case_args)
        retry = RetryPayment(**use_case_args)

        created = await create.execute(
            CreateSubscriptionCommandDTO(shop_id=7, plan=SubscriptionPlan.RETAILER)
        )
        subscription_id = created.value.subscription.id

        async def decline_current():
            session_ref = subscription_store.stored(subscription_id).payment_session_ref
            sandbox_gateway.set_outcome(session_ref, PaymentOutcome.DECLINED)
            checked = await check.execute(subscription_id)
            assert checked.value.status == "failed"

        await decline_current()
        for expected_remaining in (2, 1, 0):
            retried = await retry.execute(subscription_id)
            assert retried.is_ok()
            assert retried.value.subscription.attempts_remaining == expected_remaining
            await decline_current()

        exhausted = await retry.execute(subscription_id)

        assert exhausted.is_err()
        assert exhausted.error.code == "RETRY_EXHAUSTED"
        stored = subscription_store.stored(subscription_id)
        assert stored.status == SubscriptionStatus.FAILED
        assert stored.attempts_remaining == 0
        assert shop_store.status_of(7) == ShopStatus.PENDING_PAYMENT
        assert sandbox_gateway.sessions_created == 4
