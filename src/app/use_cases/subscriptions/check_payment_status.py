"""CheckPaymentStatus Use Case

Reconciles a pending subscription with the payment outcome reported by
the gateway. Safe to repeat: an unknown outcome never changes state.
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
from src.domain.exceptions import StaleSubscriptionError
from src.domain.subscription import Subscription, SubscriptionStatus
from src.domain.subscription_lifecycle import PaymentOutcome
from src.domain import subscription_lifecycle as lifecycle
from .dtos import PaymentStatusResponseDTO
from .gateway_calls import GatewayCalls
from .settings import LifecycleSettings
from .shop_status_sync import ShopStatusSync

logger = logging.getLogger(__name__)


def describe_status(subscription: Subscription) -> str:
    """Human-readable message for the current subscription state"""
    status = subscription.status

    if status == SubscriptionStatus.ACTIVE:
        return "Payment confirmed; the subscription is active"
    if status == SubscriptionStatus.CANCELLED:
        return "Subscription cancelled; the shop stays visible until the end of the paid period"
    if status == SubscriptionStatus.EXPIRED:
        return "Subscription expired"
    if status == SubscriptionStatus.FAILED:
        if subscription.attempts_remaining > 0:
            return (
                f"Payment declined; {subscription.attempts_remaining} "
                f"retry attempt(s) remaining"
            )
        return "Payment declined; no retry attempts remaining"
    if not subscription.payment_session_ref:
        return "Payment link unavailable; try again later"
    return "Payment pending confirmation; try again later"


class CheckPaymentStatus:
    """
    Use Case: Check and reconcile the payment of a subscription

    Business Rules:
    1. Only pending subscriptions with a session are reconciled
    2. approved -> active (shop active), declined -> failed (attempts unchanged)
    3. unknown, timeouts and gateway outages change nothing
    4. A renewal reported after its grace deadline expires (shop expired)
    5. The gateway is queried outside the shop lock; the transition is
       applied only if the session is still current after re-reading under
       the lock, otherwise the fresh state is returned
    6. A concurrent writer (version mismatch) wins; this call re-reads

    Flow:
    1. Read subscription
    2. Query gateway outcome for the stored session reference
    3. Lock shop, re-read subscription, verify session is still current
    4. Apply transition, project shop status, commit
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

    async def execute(self, subscription_id: int) -> Result[PaymentStatusResponseDTO]:
        """
        Execute payment status check

        Args:
            subscription_id: Subscription ID

        Returns:
            Result[PaymentStatusResponseDTO]: Current status and message or error

        Errors:
            SUBSCRIPTION_NOT_FOUND: Subscription does not exist
        """
        subscription = await self.subscription_repo.get_by_id(subscription_id)
        if not subscription:
            return Return.err(
                Error(
                    code="SUBSCRIPTION_NOT_FOUND",
                    message=f"Subscription {subscription_id} not found",
                )
            )

        if subscription.status != SubscriptionStatus.PENDING or not subscription.payment_session_ref:
            return Return.ok(self._to_response_dto(subscription))

        session_ref = subscription.payment_session_ref
        outcome = await self.gateway_calls.fetch_outcome(session_ref)

        if outcome == PaymentOutcome.UNKNOWN:
            logger.info(
                f"Payment for subscription {subscription_id} still pending "
                f"(session={session_ref})"
            )
            return Return.ok(self._to_response_dto(subscription))

        async with self.shop_lock.hold(subscription.shop_id):
            try:
                now = self.clock()
                shop = await self.shop_repo.get_by_id(subscription.shop_id, for_update=True)
                subscription = await self.subscription_repo.get_by_id(subscription_id)

                if (
                    subscription.status != SubscriptionStatus.PENDING
                    or subscription.payment_session_ref != session_ref
                ):
                    logger.info(
                        f"Session {session_ref} of subscription {subscription_id} is no "
                        f"longer current; ignoring outcome {outcome.value}"
                    )
                    response = self._to_response_dto(subscription)
                    await self.uow.rollback()
                    return Return.ok(response)

                lifecycle.apply_outcome(
                    subscription, outcome, now, self.settings.period_months
                )
                subscription = await self.subscription_repo.update(subscription)
                await self.shop_status_sync.apply(shop, subscription.status)

                await self.uow.commit()

            except StaleSubscriptionError as e:
                await self.uow.rollback()
                logger.info(f"{e.message}; returning the state written by the other writer")
                subscription = await self.subscription_repo.get_by_id(subscription_id)
                return Return.ok(self._to_response_dto(subscription))

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to reconcile payment of subscription {subscription_id}")
                return Return.err(
                    Error(
                        code="CHECK_PAYMENT_STATUS_FAILED",
                        message="Failed to check payment status",
                        reason=str(e),
                    )
                )

        logger.info(
            f"Subscription {subscription.id} reconciled: gateway {outcome.value} -> "
            f"{subscription.status.value}"
        )
        return Return.ok(self._to_response_dto(subscription))

    def _to_response_dto(self, subscription: Subscription) -> PaymentStatusResponseDTO:
        return PaymentStatusResponseDTO(
            subscription_id=subscription.id,
            status=subscription.status.value,
            message=describe_status(subscription),
            attempts_remaining=subscription.attempts_remaining,
        )
