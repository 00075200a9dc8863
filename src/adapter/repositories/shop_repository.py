"""SQLAlchemy Shop Repository Implementation

Provides persistence for the shop directory with pessimistic locking
support used to serialize subscription changes per shop.
"""

from datetime import datetime
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.shop_repository import ShopRepository
from src.domain.shop import Shop, ShopStatus, ShopType


class SqlAlchemyShopRepository(ShopRepository):
    """
    SQLAlchemy implementation of ShopRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE (ignored by SQLite)
    - Status-only updates
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, shop_id: int, for_update: bool = False) -> Optional[Shop]:
        """
        Retrieve shop by ID with optional row-level locking

        Args:
            shop_id: Shop ID
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            Shop if found, None otherwise
        """
        stmt = (
            select(Shop)
            .where(Shop.id == shop_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, shop: Shop) -> Shop:
        self.session.add(shop)
        await self.session.flush()
        await self.session.refresh(shop)
        return shop

    async def set_status(self, shop_id: int, status: ShopStatus) -> None:
        """
        Update shop status and updated_at timestamp

        Note:
            Should be called within a transaction with the shop already locked
        """
        shop = await self.get_by_id(shop_id, for_update=False)
        if shop:
            shop.status = status
            shop.updated_at = datetime.utcnow()
            self.session.add(shop)
            await self.session.flush()

    async def list_shops(
        self,
        status: Optional[ShopStatus] = None,
        shop_type: Optional[ShopType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Shop]:
        stmt = select(Shop)

        if status:
            stmt = stmt.where(Shop.status == status)
        if shop_type:
            stmt = stmt.where(Shop.shop_type == shop_type)

        stmt = stmt.order_by(Shop.id).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
