"""ExpirySweep Use Case

Periodic job that expires subscriptions whose time ran out and hides
their shops. Running it twice on the same data changes nothing the
second time.
"""

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.shop_lock import ShopLock
from src.app.repositories.shop_repository import ShopRepository
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.exceptions import StaleSubscriptionError
from src.domain.subscription import Subscription, SubscriptionStatus
from src.domain import subscription_lifecycle as lifecycle
from .dtos import ExpirySweepResultDTO
from .settings import LifecycleSettings
from .shop_status_sync import ShopStatusSync

logger = logging.getLogger(__name__)


class ExpirySweep:
    """
    Use Case: Expire subscriptions past their end or grace deadline

    Business Rules:
    1. active/cancelled past end_date without auto renewal -> expired
    2. active auto-renewing past end_date + grace (renewal never started) -> expired
    3. pending/failed renewals past grace_deadline -> expired
    4. Owning shop is re-projected from its current subscription (unless
       suspended); the expired row may have been replaced by a newer one
    5. Each subscription is re-checked under its shop lock; a subscription
       changed concurrently is skipped and picked up by the next sweep
    """

    def __init__(
        self,
        uow: UnitOfWork,
        subscription_repo: SubscriptionRepository,
        shop_repo: ShopRepository,
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
        self.shop_status_sync = ShopStatusSync(shop_repo)

    async def execute(self) -> Result[ExpirySweepResultDTO]:
        """
        Execute the sweep

        Returns:
            Result[ExpirySweepResultDTO]: Counts of inspected and expired subscriptions
        """
        started = time.monotonic()
        now = self.clock()
        grace_days = self.settings.renewal_grace_days

        try:
            candidates = await self._load_candidates(now)
        except Exception as e:
            logger.exception("Failed to load expiry candidates")
            return Return.err(
                Error(
                    code="EXPIRY_SWEEP_FAILED",
                    message="Failed to load subscriptions for expiry",
                    reason=str(e),
                )
            )

        due = [
            (subscription.id, subscription.shop_id)
            for subscription in candidates
            if lifecycle.is_due_for_expiry(subscription, now, grace_days)
        ]

        expired_ids: List[int] = []
        skipped = 0

        for subscription_id, shop_id in due:
            async with self.shop_lock.hold(shop_id):
                try:
                    shop = await self.shop_repo.get_by_id(shop_id, for_update=True)
                    subscription = await self.subscription_repo.get_by_id(subscription_id)

                    if not lifecycle.is_due_for_expiry(subscription, now, grace_days):
                        await self.uow.rollback()
                        skipped += 1
                        continue

                    lifecycle.expire(subscription, now)
                    await self.subscription_repo.update(subscription)

                    # The expired row is not necessarily the shop's current one
                    current = await self.subscription_repo.get_current_by_shop_id(shop_id)
                    await self.shop_status_sync.apply(shop, current.status if current else None)

                    await self.uow.commit()
                    expired_ids.append(subscription_id)
                    logger.info(f"Subscription {subscription_id} of shop {shop_id} expired")

                except StaleSubscriptionError as e:
                    await self.uow.rollback()
                    skipped += 1
                    logger.info(f"{e.message}; left for the next sweep")

                except Exception:
                    await self.uow.rollback()
                    skipped += 1
                    logger.exception(f"Failed to expire subscription {subscription_id}")

        execution_time_ms = int((time.monotonic() - started) * 1000)
        if expired_ids:
            logger.info(f"Expiry sweep expired {len(expired_ids)} subscription(s)")

        return Return.ok(
            ExpirySweepResultDTO(
                candidates_checked=len(candidates),
                expired_count=len(expired_ids),
                skipped_count=skipped,
                expired_subscription_ids=expired_ids,
                sweep_time=now,
                execution_time_ms=execution_time_ms,
            )
        )

    async def _load_candidates(self, now: datetime) -> List[Subscription]:
        ended = await self.subscription_repo.list_ending_before(
            [SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED], now
        )
        unpaid = await self.subscription_repo.list_by_statuses(
            [SubscriptionStatus.PENDING, SubscriptionStatus.FAILED]
        )
        return ended + [subscription for subscription in unpaid if subscription.is_renewal]
