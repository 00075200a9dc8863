"""In-memory repositories

Stored rows are copies, so a use case only sees another writer's change
after re-reading, and a stale version is rejected on update like the
SQL implementation does.
"""

from datetime import datetime
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

from src.app.repositories.shop_repository import ShopRepository
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.exceptions import ConflictError, StaleSubscriptionError
from src.domain.shop import Shop, ShopStatus, ShopType
from src.domain.subscription import OPEN_STATUSES, Subscription, SubscriptionStatus


def _copy_subscription(subscription: Subscription) -> Subscription:
    return Subscription(**subscription.model_dump())


def _copy_shop(shop: Shop) -> Shop:
    return Shop(**shop.model_dump())


class InMemorySubscriptionRepository(SubscriptionRepository):
    def __init__(self):
        self.rows: Dict[int, Subscription] = {}
        self._next_id = 1
        self.update_calls = 0

    def add(self, subscription: Subscription) -> Subscription:
        """Seed a row directly, bypassing create()"""
        if subscription.id is None:
            subscription.id = self._next_id
        self._next_id = max(self._next_id, subscription.id + 1)
        self.rows[subscription.id] = _copy_subscription(subscription)
        return subscription

    def stored(self, subscription_id: int) -> Subscription:
        return self.rows[subscription_id]

    async def get_current_by_shop_id(self, shop_id: int) -> Optional[Subscription]:
        rows = [row for row in self.rows.values() if row.shop_id == shop_id]
        if not rows:
            return None
        newest = max(rows, key=lambda row: (row.created_at, row.id))
        return _copy_subscription(newest)

    async def get_open_by_shop_id(self, shop_id: int) -> Optional[Subscription]:
        for row in self.rows.values():
            if row.shop_id == shop_id and row.status in OPEN_STATUSES:
                return _copy_subscription(row)
        return None

    async def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        row = self.rows.get(subscription_id)
        return _copy_subscription(row) if row else None

    async def get_by_session_ref(self, session_ref: str) -> Optional[Subscription]:
        for row in self.rows.values():
            if row.payment_session_ref == session_ref:
                return _copy_subscription(row)
        return None

    async def create(self, subscription: Subscription) -> Subscription:
        if subscription.status in OPEN_STATUSES and await self.get_open_by_shop_id(
            subscription.shop_id
        ):
            raise ConflictError(
                f"Shop {subscription.shop_id} already has a pending or active subscription"
            )
        subscription.id = self._next_id
        subscription.version = 1
        self._next_id += 1
        self.rows[subscription.id] = _copy_subscription(subscription)
        return subscription

    async def update(self, subscription: Subscription) -> Subscription:
        self.update_calls += 1
        stored = self.rows[subscription.id]
        if stored.version != subscription.version:
            raise StaleSubscriptionError(
                f"Subscription {subscription.id} was modified concurrently "
                f"(expected version {subscription.version})"
            )
        subscription.version += 1
        self.rows[subscription.id] = _copy_subscription(subscription)
        return subscription

    async def list_by_statuses(self, statuses: List[SubscriptionStatus]) -> List[Subscription]:
        return [
            _copy_subscription(row)
            for row in sorted(self.rows.values(), key=lambda row: row.id)
            if row.status in statuses
        ]

    async def list_ending_before(
        self, statuses: List[SubscriptionStatus], moment: datetime
    ) -> List[Subscription]:
        return [
            row
            for row in await self.list_by_statuses(statuses)
            if row.end_date is not None and row.end_date < moment
        ]

    async def count_by_status(self) -> Dict[SubscriptionStatus, int]:
        counts: Dict[SubscriptionStatus, int] = {}
        for row in self.rows.values():
            counts[row.status] = counts.get(row.status, 0) + 1
        return counts


class InMemoryShopRepository(ShopRepository):
    def __init__(self):
        self.rows: Dict[int, Shop] = {}
        self._next_id = 1

    def add(self, shop: Shop) -> Shop:
        self.rows[shop.id] = _copy_shop(shop)
        self._next_id = max(self._next_id, shop.id + 1)
        return shop

    def status_of(self, shop_id: int) -> ShopStatus:
        return self.rows[shop_id].status

    async def get_by_id(self, shop_id: int, for_update: bool = False) -> Optional[Shop]:
        row = self.rows.get(shop_id)
        return _copy_shop(row) if row else None

    async def create(self, shop: Shop) -> Shop:
        shop.id = self._next_id
        self._next_id += 1
        self.rows[shop.id] = _copy_shop(shop)
        return shop

    async def set_status(self, shop_id: int, status: ShopStatus) -> None:
        if shop_id in self.rows:
            self.rows[shop_id].status = status

    async def list_shops(
        self,
        status: Optional[ShopStatus] = None,
        shop_type: Optional[ShopType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Shop]:
        rows = [
            row
            for row in sorted(self.rows.values(), key=lambda row: row.id)
            if (status is None or row.status == status)
            and (shop_type is None or row.shop_type == shop_type)
        ]
        return [_copy_shop(row) for row in rows[offset:offset + limit]]


def make_uow() -> MagicMock:
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow
