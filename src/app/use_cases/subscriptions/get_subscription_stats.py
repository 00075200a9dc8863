"""Get Subscription Stats Use Case

Aggregates subscription counts per status and recurring revenue.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from libs.result import Result, Return, Error
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.subscription import SubscriptionStatus
from .dtos import SubscriptionStatsDTO
from .settings import LifecycleSettings

logger = logging.getLogger(__name__)


class GetSubscriptionStats:
    """
    Use Case: Subscription counts and monthly recurring revenue

    Revenue sums active rows plus cancelled rows whose paid period is
    still running; both keep their shop visible until end_date.
    """

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        settings: Optional[LifecycleSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.subscription_repo = subscription_repo
        self.settings = settings or LifecycleSettings()
        self.clock = clock or datetime.utcnow

    async def execute(self) -> Result[SubscriptionStatsDTO]:
        try:
            now = self.clock()
            counts = await self.subscription_repo.count_by_status()
            by_status = {status.value: counts.get(status, 0) for status in SubscriptionStatus}

            paying = await self.subscription_repo.list_by_statuses(
                [SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED]
            )
            revenue = sum(
                (
                    subscription.amount
                    for subscription in paying
                    if subscription.status == SubscriptionStatus.ACTIVE
                    or (subscription.end_date is not None and subscription.end_date > now)
                ),
                Decimal("0"),
            )

        except Exception as e:
            logger.exception("Failed to aggregate subscription stats")
            return Return.err(
                Error(
                    code="SUBSCRIPTION_STATS_FAILED",
                    message="Failed to aggregate subscription stats",
                    reason=str(e),
                )
            )

        return Return.ok(
            SubscriptionStatsDTO(
                total=sum(by_status.values()),
                by_status=by_status,
                monthly_recurring_revenue=revenue,
                currency=self.settings.currency,
            )
        )
