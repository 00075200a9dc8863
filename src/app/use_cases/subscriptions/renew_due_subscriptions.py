"""RenewDueSubscriptions Use Case

Periodic job that starts renewals for auto-renewing subscriptions whose
period ended, and reissues checkout sessions for renewals left without
one by a gateway outage.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional
from libs.result import Result, Return, Error
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.subscription import Subscription, SubscriptionStatus
from src.domain import subscription_lifecycle as lifecycle
from .dtos import RenewalRunResultDTO
from .renew_subscription import RenewSubscription
from .settings import LifecycleSettings

logger = logging.getLogger(__name__)


class RenewDueSubscriptions:
    """
    Use Case: Renew every subscription that is due

    Each renewal runs (and commits) on its own through RenewSubscription,
    so one failing renewal does not block the others.
    """

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        renew_subscription: RenewSubscription,
        settings: Optional[LifecycleSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.subscription_repo = subscription_repo
        self.renew_subscription = renew_subscription
        self.settings = settings or LifecycleSettings()
        self.clock = clock or datetime.utcnow

    async def execute(self) -> Result[RenewalRunResultDTO]:
        now = self.clock()

        try:
            due_ids = await self._find_due(now)
        except Exception as e:
            logger.exception("Failed to load subscriptions due for renewal")
            return Return.err(
                Error(
                    code="RENEWAL_RUN_FAILED",
                    message="Failed to load subscriptions due for renewal",
                    reason=str(e),
                )
            )

        renewed_ids: List[int] = []
        sessions_issued = 0
        failed = 0

        for subscription_id in due_ids:
            result = await self.renew_subscription.execute(subscription_id)
            if result.is_err():
                failed += 1
                logger.warning(
                    f"Renewal of subscription {subscription_id} failed: "
                    f"{result.error.code} {result.error.message}"
                )
                continue

            renewed_ids.append(subscription_id)
            if result.value.init_point:
                sessions_issued += 1

        return Return.ok(
            RenewalRunResultDTO(
                due_count=len(due_ids),
                renewed_count=len(renewed_ids),
                sessions_issued=sessions_issued,
                failed_count=failed,
                renewed_subscription_ids=renewed_ids,
            )
        )

    async def _find_due(self, now: datetime) -> List[int]:
        grace_days = self.settings.renewal_grace_days
        candidates: List[Subscription] = await self.subscription_repo.list_by_statuses(
            [SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING]
        )

        due_ids = []
        for subscription in candidates:
            if lifecycle.is_due_for_renewal(subscription, now, grace_days):
                due_ids.append(subscription.id)
            elif (
                subscription.status == SubscriptionStatus.PENDING
                and subscription.is_renewal
                and not subscription.payment_session_ref
                and subscription.grace_deadline is not None
                and subscription.grace_deadline >= now
            ):
                due_ids.append(subscription.id)
        return due_ids
