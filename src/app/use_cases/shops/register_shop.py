"""RegisterShop Use Case

Adds a shop to the directory. New shops wait for their first payment.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.shop_repository import ShopRepository
from src.domain.shop import Shop, ShopStatus
from .dtos import RegisterShopCommandDTO, ShopDTO, to_shop_dto

logger = logging.getLogger(__name__)


class RegisterShop:
    def __init__(self, uow: UnitOfWork, shop_repo: ShopRepository):
        self.uow = uow
        self.shop_repo = shop_repo

    async def execute(self, command: RegisterShopCommandDTO) -> Result[ShopDTO]:
        try:
            shop = await self.shop_repo.create(
                Shop(
                    owner_id=command.owner_id,
                    name=command.name,
                    shop_type=command.shop_type,
                    status=ShopStatus.PENDING_PAYMENT,
                )
            )
            await self.uow.commit()
        except Exception as e:
            await self.uow.rollback()
            logger.exception(f"Failed to register shop for owner {command.owner_id}")
            return Return.err(
                Error(
                    code="REGISTER_SHOP_FAILED",
                    message="Failed to register shop",
                    reason=str(e),
                )
            )

        logger.info(f"Shop {shop.id} registered for owner {shop.owner_id}")
        return Return.ok(to_shop_dto(shop))
