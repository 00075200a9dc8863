"""RetryPayment Use Case

Opens a new checkout session for a declined subscription, consuming one
attempt of its retry budget.
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.shop_lock import ShopLock
from src.app.repositories.shop_repository import ShopRepository
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.exceptions import InvalidStateError, SubscriptionError
from src.domain.subscription import SubscriptionStatus
from src.domain import subscription_lifecycle as lifecycle
from .dtos import SubscriptionActionResponseDTO, to_subscription_dto
from .gateway_calls import GatewayCalls
from .settings import LifecycleSettings
from .shop_status_sync import ShopStatusSync

logger = logging.getLogger(__name__)


class RetryPayment:
    """
    Use Case: Retry the payment of a subscription

    Business Rules:
    1. failed -> pending with a new session; attempts_remaining decremented by 1
    2. attempts_remaining == 0 -> RETRY_EXHAUSTED, state unchanged
    3. active/cancelled -> already resolved, returned without a checkout URL
    4. pending without a session (gateway was down) -> session issued, no attempt consumed
    5. Any other state, or a row replaced by a newer subscription -> INVALID_STATE
    6. Gateway outage consumes nothing and reports "try again later"
    7. The previous session reference is discarded, never reused
    """

    def __init__(
        self,
        uow: UnitOfWork,
        subscription_repo: SubscriptionRepository,
        shop_repo: ShopRepository,
        gateway: PaymentGateway,
        shop_lock: ShopLock,
        settings: Optional[LifecycleSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.uow = uow
        self.subscription_repo = subscription_repo
        self.shop_repo = shop_repo
        self.shop_lock = shop_lock
        self.settings = settings or LifecycleSettings()
        self.clock = clock or datetime.utcnow
        self.gateway_calls = GatewayCalls(gateway, self.settings.gateway_timeout_seconds)
        self.shop_status_sync = ShopStatusSync(shop_repo)

    async def execute(self, subscription_id: int) -> Result[SubscriptionActionResponseDTO]:
        """
        Execute payment retry

        Args:
            subscription_id: Subscription ID

        Returns:
            Result[SubscriptionActionResponseDTO]: Subscription and new checkout URL or error

        Errors:
            SUBSCRIPTION_NOT_FOUND: Subscription does not exist
            INVALID_STATE: Subscription is not in a retryable state
            RETRY_EXHAUSTED: No attempts remaining
        """
        subscription = await self.subscription_repo.get_by_id(subscription_id)
        if not subscription:
            return Return.err(
                Error(
                    code="SUBSCRIPTION_NOT_FOUND",
                    message=f"Subscription {subscription_id} not found",
                )
            )

        async with self.shop_lock.hold(subscription.shop_id):
            try:
                now = self.clock()
                shop = await self.shop_repo.get_by_id(subscription.shop_id, for_update=True)
                subscription = await self.subscription_repo.get_by_id(subscription_id)

                if subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED):
                    response = SubscriptionActionResponseDTO(
                        subscription=to_subscription_dto(subscription),
                        init_point=None,
                        message="Payment already confirmed; nothing to retry",
                    )
                    await self.uow.rollback()
                    return Return.ok(response)

                current = await self.subscription_repo.get_current_by_shop_id(subscription.shop_id)
                if current.id != subscription.id:
                    raise InvalidStateError(
                        f"Subscription {subscription_id} was replaced by subscription {current.id}"
                    )

                reissue = (
                    subscription.status == SubscriptionStatus.PENDING
                    and not subscription.payment_session_ref
                )
                if not reissue:
                    lifecycle.ensure_retryable(subscription)

                session = await self.gateway_calls.open_session(subscription)
                if not session:
                    response = SubscriptionActionResponseDTO(
                        subscription=to_subscription_dto(subscription),
                        init_point=None,
                        message="Payment gateway unavailable; try again later",
                    )
                    await self.uow.rollback()
                    return Return.ok(response)

                if not reissue:
                    lifecycle.begin_retry(subscription, now)
                lifecycle.attach_session(
                    subscription, session.session_ref, session.checkout_url, now
                )
                subscription = await self.subscription_repo.update(subscription)
                await self.shop_status_sync.apply(shop, subscription.status)

                await self.uow.commit()

            except SubscriptionError as e:
                await self.uow.rollback()
                logger.info(f"Retry of subscription {subscription_id} rejected: {e.message}")
                return Return.err(Error(code=e.code, message=e.message))

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to retry payment of subscription {subscription_id}")
                return Return.err(
                    Error(
                        code="RETRY_PAYMENT_FAILED",
                        message="Failed to retry payment",
                        reason=str(e),
                    )
                )

        logger.info(
            f"Subscription {subscription.id} payment retried "
            f"(attempts_remaining={subscription.attempts_remaining}, "
            f"session={subscription.payment_session_ref})"
        )
        return Return.ok(
            SubscriptionActionResponseDTO(
                subscription=to_subscription_dto(subscription),
                init_point=session.checkout_url,
                message="New payment link created; complete the payment to activate the subscription",
            )
        )
