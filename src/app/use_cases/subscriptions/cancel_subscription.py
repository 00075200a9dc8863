"""CancelSubscription Use Case

Stops auto renewal of a shop's active subscription. The paid period keeps
running; the expiry sweep ends it at end_date.
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.shop_lock import ShopLock
from src.app.repositories.shop_repository import ShopRepository
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.exceptions import InvalidStateError, NotFoundError, SubscriptionError
from src.domain.subscription import SubscriptionStatus
from src.domain import subscription_lifecycle as lifecycle
from .dtos import SubscriptionActionResponseDTO, to_subscription_dto
from .shop_status_sync import ShopStatusSync

logger = logging.getLogger(__name__)


class CancelSubscription:
    """
    Use Case: Cancel a shop's subscription

    Business Rules:
    1. Only an active subscription can be cancelled (INVALID_STATE otherwise)
    2. auto_renew is cleared and status becomes cancelled
    3. The shop stays active until end_date
    4. In-flight gateway payments are never cancelled
    """

    def __init__(
        self,
        uow: UnitOfWork,
        subscription_repo: SubscriptionRepository,
        shop_repo: ShopRepository,
        shop_lock: ShopLock,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.uow = uow
        self.subscription_repo = subscription_repo
        self.shop_repo = shop_repo
        self.shop_lock = shop_lock
        self.clock = clock or datetime.utcnow
        self.shop_status_sync = ShopStatusSync(shop_repo)

    async def execute(self, shop_id: int) -> Result[SubscriptionActionResponseDTO]:
        """
        Execute cancellation

        Args:
            shop_id: Shop whose subscription is cancelled

        Returns:
            Result[SubscriptionActionResponseDTO]: Cancelled subscription or error

        Errors:
            SHOP_NOT_FOUND: Shop does not exist
            INVALID_STATE: Shop has no active subscription
        """
        async with self.shop_lock.hold(shop_id):
            try:
                now = self.clock()
                shop = await self.shop_repo.get_by_id(shop_id, for_update=True)
                if not shop:
                    raise NotFoundError(f"Shop {shop_id} not found", code="SHOP_NOT_FOUND")

                subscription = await self.subscription_repo.get_current_by_shop_id(shop_id)
                if not subscription or subscription.status != SubscriptionStatus.ACTIVE:
                    raise InvalidStateError(f"Shop {shop_id} has no active subscription to cancel")

                lifecycle.cancel(subscription, now)
                subscription = await self.subscription_repo.update(subscription)
                await self.shop_status_sync.apply(shop, subscription.status)

                await self.uow.commit()

            except SubscriptionError as e:
                await self.uow.rollback()
                logger.info(f"Cancellation for shop {shop_id} rejected: {e.message}")
                return Return.err(Error(code=e.code, message=e.message))

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to cancel subscription of shop {shop_id}")
                return Return.err(
                    Error(
                        code="CANCEL_SUBSCRIPTION_FAILED",
                        message="Failed to cancel subscription",
                        reason=str(e),
                    )
                )

        logger.info(
            f"Subscription {subscription.id} of shop {shop_id} cancelled; "
            f"visible until {subscription.end_date}"
        )
        return Return.ok(
            SubscriptionActionResponseDTO(
                subscription=to_subscription_dto(subscription),
                init_point=None,
                message=f"Subscription cancelled; the shop stays visible until {subscription.end_date:%Y-%m-%d}",
            )
        )
