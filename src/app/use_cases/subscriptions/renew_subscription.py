"""RenewSubscription Use Case

Starts the renewal payment of an auto-renewing subscription whose period
has ended. The shop is hidden until the renewal is paid.
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
from src.domain.exceptions import SubscriptionError
from src.domain.subscription import SubscriptionStatus
from src.domain import subscription_lifecycle as lifecycle
from .dtos import SubscriptionActionResponseDTO, to_subscription_dto
from .gateway_calls import GatewayCalls
from .settings import LifecycleSettings
from .shop_status_sync import ShopStatusSync

logger = logging.getLogger(__name__)


class RenewSubscription:
    """
    Use Case: Renew a subscription at the end of its period

    Business Rules:
    1. Only active, auto-renewing subscriptions past end_date renew
    2. active -> pending (renewal) and shop active -> pending_payment
    3. grace_deadline = end_date + renewal grace days
    4. Approval before the deadline (CheckPaymentStatus) extends end_date
       by one period from the previous end_date
    5. A deadline miss is expired by the ExpirySweep
    6. A renewal left without a session (gateway outage) is resumed by
       issuing a session, without any other transition
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
        Execute renewal

        Args:
            subscription_id: Subscription ID

        Returns:
            Result[SubscriptionActionResponseDTO]: Subscription and checkout URL or error

        Errors:
            SUBSCRIPTION_NOT_FOUND: Subscription does not exist
            INVALID_STATE: Subscription is not due for renewal
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

                resume = (
                    subscription.status == SubscriptionStatus.PENDING
                    and subscription.is_renewal
                    and not subscription.payment_session_ref
                )
                if not resume:
                    lifecycle.begin_renewal(subscription, now, self.settings.renewal_grace_days)

                session = await self.gateway_calls.open_session(subscription)
                if session:
                    lifecycle.attach_session(
                        subscription, session.session_ref, session.checkout_url, now
                    )

                if resume and not session:
                    response = SubscriptionActionResponseDTO(
                        subscription=to_subscription_dto(subscription),
                        init_point=None,
                        message="Payment gateway unavailable; try again later",
                    )
                    await self.uow.rollback()
                    return Return.ok(response)

                subscription = await self.subscription_repo.update(subscription)
                await self.shop_status_sync.apply(shop, subscription.status)

                await self.uow.commit()

            except SubscriptionError as e:
                await self.uow.rollback()
                logger.info(f"Renewal of subscription {subscription_id} rejected: {e.message}")
                return Return.err(Error(code=e.code, message=e.message))

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to renew subscription {subscription_id}")
                return Return.err(
                    Error(
                        code="RENEW_SUBSCRIPTION_FAILED",
                        message="Failed to renew subscription",
                        reason=str(e),
                    )
                )

        logger.info(
            f"Subscription {subscription.id} renewal pending until "
            f"{subscription.grace_deadline} (session={subscription.payment_session_ref})"
        )

        if session:
            message = "Renewal payment required; complete it before the grace deadline"
        else:
            message = "Renewal started but the payment link is unavailable; try again later"

        return Return.ok(
            SubscriptionActionResponseDTO(
                subscription=to_subscription_dto(subscription),
                init_point=session.checkout_url if session else None,
                message=message,
            )
        )
