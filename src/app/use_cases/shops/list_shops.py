"""List/Get Shop Use Cases

Read-only access to the shop directory. Public listings only contain
visible (active) shops.
"""

from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.shop_repository import ShopRepository
from src.domain.shop import ShopStatus, ShopType
from .dtos import ShopDTO, ShopListResponseDTO, to_shop_dto


class ListShops:
    def __init__(self, shop_repo: ShopRepository):
        self.shop_repo = shop_repo

    async def execute(
        self,
        status: Optional[ShopStatus] = ShopStatus.ACTIVE,
        shop_type: Optional[ShopType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result[ShopListResponseDTO]:
        """
        Execute shop listing

        Args:
            status: Status filter, defaults to visible shops only
            shop_type: Optional type filter
            limit: Page size
            offset: Page offset
        """
        shops = await self.shop_repo.list_shops(
            status=status, shop_type=shop_type, limit=limit, offset=offset
        )
        return Return.ok(
            ShopListResponseDTO(
                shops=[to_shop_dto(shop) for shop in shops],
                limit=limit,
                offset=offset,
            )
        )


class GetShop:
    def __init__(self, shop_repo: ShopRepository):
        self.shop_repo = shop_repo

    async def execute(self, shop_id: int) -> Result[ShopDTO]:
        shop = await self.shop_repo.get_by_id(shop_id)
        if not shop:
            return Return.err(
                Error(code="SHOP_NOT_FOUND", message=f"Shop {shop_id} not found")
            )
        return Return.ok(to_shop_dto(shop))
