"""Get Subscription Use Case

Retrieves the current subscription of a shop.
"""

from libs.result import Result, Return, Error
from src.app.repositories.subscription_repository import SubscriptionRepository
from .dtos import SubscriptionDTO, to_subscription_dto


class GetSubscription:
    """
    Get Subscription Use Case

    Read-only. "No subscription" is reported as SUBSCRIPTION_NOT_FOUND and
    is never conflated with storage failures, which propagate.
    """

    def __init__(self, subscription_repo: SubscriptionRepository):
        self.subscription_repo = subscription_repo

    async def execute(self, shop_id: int) -> Result[SubscriptionDTO]:
        """
        Execute get subscription

        Args:
            shop_id: Shop identifier

        Returns:
            Result[SubscriptionDTO]: Current subscription or error

        Errors:
            SUBSCRIPTION_NOT_FOUND: Shop never subscribed
        """
        subscription = await self.subscription_repo.get_current_by_shop_id(shop_id)

        if not subscription:
            return Return.err(
                Error(
                    code="SUBSCRIPTION_NOT_FOUND",
                    message=f"No subscription found for shop {shop_id}",
                )
            )

        return Return.ok(to_subscription_dto(subscription))


class GetSubscriptionById:
    def __init__(self, subscription_repo: SubscriptionRepository):
        self.subscription_repo = subscription_repo

    async def execute(self, subscription_id: int) -> Result[SubscriptionDTO]:
        subscription = await self.subscription_repo.get_by_id(subscription_id)
        if not subscription:
            return Return.err(
                Error(
                    code="SUBSCRIPTION_NOT_FOUND",
                    message=f"Subscription {subscription_id} not found",
                )
            )
        return Return.ok(to_subscription_dto(subscription))
