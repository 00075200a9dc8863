"""Shop status projection

Keeps a shop's status in line with its current subscription. This is the
only writer of shop status besides the administrative suspend/reinstate.
"""

import logging
from typing import Optional
from src.app.repositories.shop_repository import ShopRepository
from src.domain.shop import Shop, ShopStatus
from src.domain.subscription import SubscriptionStatus
from src.domain.subscription_lifecycle import project_shop_status

logger = logging.getLogger(__name__)


class ShopStatusSync:
    def __init__(self, shop_repo: ShopRepository):
        self.shop_repo = shop_repo

    async def apply(
        self, shop: Shop, subscription_status: Optional[SubscriptionStatus]
    ) -> ShopStatus:
        """
        Project the subscription status onto the (locked) shop

        Args:
            shop: Shop read with for_update=True
            subscription_status: Status of the shop's current subscription

        Returns:
            The shop status after projection
        """
        target = project_shop_status(subscription_status, shop.status)

        if shop.status == ShopStatus.SUSPENDED:
            logger.info(
                f"Shop {shop.id} is suspended; subscription status "
                f"{subscription_status.value if subscription_status else None} not projected"
            )
            return shop.status

        if target != shop.status:
            logger.info(f"Shop {shop.id} status {shop.status.value} -> {target.value}")
            await self.shop_repo.set_status(shop.id, target)
            shop.status = target

        return target
