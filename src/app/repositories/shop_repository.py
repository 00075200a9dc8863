"""Shop Repository Interface

Defines the contract for the shop directory.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.shop import Shop, ShopStatus, ShopType


class ShopRepository(ABC):
    """
    Repository interface for Shop persistence

    get_by_id(for_update=True) takes the per-shop row lock that serializes
    subscription mutations across service instances.
    """

    @abstractmethod
    async def get_by_id(self, shop_id: int, for_update: bool = False) -> Optional[Shop]:
        """
        Retrieve shop by ID

        Args:
            shop_id: Shop ID
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Shop if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, shop: Shop) -> Shop:
        """
        Create a new shop

        Args:
            shop: Shop entity to persist

        Returns:
            Created Shop with generated ID
        """
        pass

    @abstractmethod
    async def set_status(self, shop_id: int, status: ShopStatus) -> None:
        """
        Update shop status and updated_at timestamp

        Args:
            shop_id: Shop ID
            status: New status
        """
        pass

    @abstractmethod
    async def list_shops(
        self,
        status: Optional[ShopStatus] = None,
        shop_type: Optional[ShopType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Shop]:
        """
        List shops, optionally filtered by status and type

        Returns:
            Shops ordered by id
        """
        pass
