"""CreateSubscription Use Case

Subscribes a shop to a plan and opens a hosted checkout session.
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
from src.domain.exceptions import ConflictError, NotFoundError, SubscriptionError
from src.domain import subscription_lifecycle as lifecycle
from .dtos import (
    CreateSubscriptionCommandDTO,
    SubscriptionActionResponseDTO,
    to_subscription_dto,
)
from .gateway_calls import GatewayCalls
from .settings import LifecycleSettings
from .shop_status_sync import ShopStatusSync

logger = logging.getLogger(__name__)


class CreateSubscription:
    """
    Use Case: Create a subscription for a shop

    Business Rules:
    1. At most one pending/active subscription per shop (SUBSCRIPTION_CONFLICT)
    2. A cancelled subscription blocks until its paid period ends
    3. New subscriptions start pending with the full retry budget
    4. Shop moves to pending_payment (unless suspended)
    5. Gateway outage still persists the pending row, without a checkout URL

    Flow:
    1. Lock shop (in-process lock + SELECT FOR UPDATE)
    2. Reject if the current subscription blocks a new one
    3. Create pending subscription
    4. Request checkout session (bounded timeout)
    5. Store session reference and project shop status
    6. Commit and return checkout URL
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

    async def execute(
        self, command: CreateSubscriptionCommandDTO
    ) -> Result[SubscriptionActionResponseDTO]:
        """
        Execute subscription creation

        Args:
            command: CreateSubscriptionCommandDTO with shop_id, plan, auto_renew

        Returns:
            Result[SubscriptionActionResponseDTO]: Subscription and checkout URL or error

        Errors:
            SHOP_NOT_FOUND: Shop does not exist
            SUBSCRIPTION_CONFLICT: Shop already has a pending/active subscription
        """
        async with self.shop_lock.hold(command.shop_id):
            try:
                now = self.clock()

                shop = await self.shop_repo.get_by_id(command.shop_id, for_update=True)
                if not shop:
                    raise NotFoundError(
                        f"Shop {command.shop_id} not found", code="SHOP_NOT_FOUND"
                    )

                current = await self.subscription_repo.get_current_by_shop_id(shop.id)
                if lifecycle.blocks_new_subscription(current, now):
                    raise ConflictError(
                        f"Shop {shop.id} already has a {current.status.value} subscription"
                    )

                subscription = lifecycle.new_subscription(
                    shop_id=shop.id,
                    plan=command.plan,
                    amount=self.settings.price_for(command.plan),
                    currency=self.settings.currency,
                    auto_renew=command.auto_renew,
                    max_attempts=self.settings.max_payment_attempts,
                    now=now,
                )
                subscription = await self.subscription_repo.create(subscription)

                session = await self.gateway_calls.open_session(subscription)
                if session:
                    lifecycle.attach_session(
                        subscription, session.session_ref, session.checkout_url, now
                    )
                    subscription = await self.subscription_repo.update(subscription)

                await self.shop_status_sync.apply(shop, subscription.status)

                await self.uow.commit()

            except SubscriptionError as e:
                await self.uow.rollback()
                logger.info(f"Subscription for shop {command.shop_id} rejected: {e.message}")
                return Return.err(Error(code=e.code, message=e.message))

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to create subscription for shop {command.shop_id}")
                return Return.err(
                    Error(
                        code="CREATE_SUBSCRIPTION_FAILED",
                        message="Failed to create subscription",
                        reason=str(e),
                    )
                )

        logger.info(
            f"Subscription {subscription.id} created for shop {subscription.shop_id} "
            f"({subscription.plan.value}, session={subscription.payment_session_ref})"
        )

        if session:
            message = "Subscription created; complete the payment to activate it"
        else:
            message = "Subscription created but the payment link is unavailable; try again later"

        return Return.ok(
            SubscriptionActionResponseDTO(
                subscription=to_subscription_dto(subscription),
                init_point=session.checkout_url if session else None,
                message=message,
            )
        )
