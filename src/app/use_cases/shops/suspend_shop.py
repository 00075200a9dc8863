"""SuspendShop / ReinstateShop Use Cases

Administrative override of shop visibility. While suspended, subscription
transitions keep running but never change the shop status.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.shop_lock import ShopLock
from src.app.repositories.shop_repository import ShopRepository
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.shop import ShopStatus
from src.domain.subscription_lifecycle import project_shop_status
from .dtos import ShopDTO, to_shop_dto

logger = logging.getLogger(__name__)


class SuspendShop:
    """
    Use Case: Suspend a shop

    Idempotent: suspending a suspended shop returns it unchanged.
    """

    def __init__(self, uow: UnitOfWork, shop_repo: ShopRepository, shop_lock: ShopLock):
        self.uow = uow
        self.shop_repo = shop_repo
        self.shop_lock = shop_lock

    async def execute(self, shop_id: int) -> Result[ShopDTO]:
        async with self.shop_lock.hold(shop_id):
            try:
                shop = await self.shop_repo.get_by_id(shop_id, for_update=True)
                if not shop:
                    await self.uow.rollback()
                    return Return.err(
                        Error(code="SHOP_NOT_FOUND", message=f"Shop {shop_id} not found")
                    )

                if shop.status != ShopStatus.SUSPENDED:
                    logger.warning(f"Shop {shop_id} suspended (was {shop.status.value})")
                    await self.shop_repo.set_status(shop_id, ShopStatus.SUSPENDED)
                    shop.status = ShopStatus.SUSPENDED

                response = to_shop_dto(shop)
                await self.uow.commit()

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to suspend shop {shop_id}")
                return Return.err(
                    Error(code="SUSPEND_SHOP_FAILED", message="Failed to suspend shop", reason=str(e))
                )

        return Return.ok(response)


class ReinstateShop:
    """
    Use Case: Lift a suspension

    The shop status is re-derived from its current subscription; a shop
    that never subscribed goes back to pending_payment.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        shop_repo: ShopRepository,
        subscription_repo: SubscriptionRepository,
        shop_lock: ShopLock,
    ):
        self.uow = uow
        self.shop_repo = shop_repo
        self.subscription_repo = subscription_repo
        self.shop_lock = shop_lock

    async def execute(self, shop_id: int) -> Result[ShopDTO]:
        async with self.shop_lock.hold(shop_id):
            try:
                shop = await self.shop_repo.get_by_id(shop_id, for_update=True)
                if not shop:
                    await self.uow.rollback()
                    return Return.err(
                        Error(code="SHOP_NOT_FOUND", message=f"Shop {shop_id} not found")
                    )

                if shop.status != ShopStatus.SUSPENDED:
                    await self.uow.rollback()
                    return Return.err(
                        Error(
                            code="INVALID_STATE",
                            message=f"Shop {shop_id} is not suspended",
                        )
                    )

                subscription = await self.subscription_repo.get_current_by_shop_id(shop_id)
                target = project_shop_status(
                    subscription.status if subscription else None,
                    ShopStatus.PENDING_PAYMENT,
                )
                await self.shop_repo.set_status(shop_id, target)
                shop.status = target

                response = to_shop_dto(shop)
                await self.uow.commit()

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to reinstate shop {shop_id}")
                return Return.err(
                    Error(code="REINSTATE_SHOP_FAILED", message="Failed to reinstate shop", reason=str(e))
                )

        logger.info(f"Shop {shop_id} reinstated as {target.value}")
        return Return.ok(response)
