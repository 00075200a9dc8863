"""SQLAlchemy Subscription Repository Implementation

Implements subscription persistence using SQLAlchemy async session.
Updates use an optimistic version check so that a writer working from a
stale read never overwrites a newer state.
"""

from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.subscription_repository import SubscriptionRepository
from src.domain.exceptions import ConflictError, StaleSubscriptionError
from src.domain.subscription import OPEN_STATUSES, Subscription, SubscriptionStatus

# Columns written by update(); id, shop_id and created_at never change
_MUTABLE_COLUMNS = (
    "plan",
    "amount",
    "currency",
    "status",
    "auto_renew",
    "start_date",
    "end_date",
    "attempts_remaining",
    "payment_session_ref",
    "checkout_url",
    "is_renewal",
    "grace_deadline",
    "updated_at",
)


class SqlAlchemySubscriptionRepository(SubscriptionRepository):
    """
    SQLAlchemy implementation of SubscriptionRepository

    Features:
    - Current subscription = newest row of the shop
    - Partial unique index rejects a second pending/active row
    - Version-checked updates (compare-and-set on version)
    - Reads use populate_existing so a re-read in the same session sees
      rows committed by other writers, not the identity map copy
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_current_by_shop_id(self, shop_id: int) -> Optional[Subscription]:
        statement = (
            select(Subscription)
            .where(Subscription.shop_id == shop_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def get_open_by_shop_id(self, shop_id: int) -> Optional[Subscription]:
        statement = select(Subscription).where(
            Subscription.shop_id == shop_id,
            Subscription.status.in_(OPEN_STATUSES),
        ).execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        statement = (
            select(Subscription)
            .where(Subscription.id == subscription_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_session_ref(self, session_ref: str) -> Optional[Subscription]:
        statement = select(Subscription).where(
            Subscription.payment_session_ref == session_ref
        ).execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def create(self, subscription: Subscription) -> Subscription:
        """
        Create a new subscription

        Args:
            subscription: Subscription entity to persist

        Returns:
            Created Subscription with generated ID

        Raises:
            ConflictError: Partial unique index rejected a second open row
        """
        self.session.add(subscription)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError(
                f"Shop {subscription.shop_id} already has a pending or active subscription"
            ) from e
        await self.session.refresh(subscription)
        return subscription

    async def update(self, subscription: Subscription) -> Subscription:
        """
        Compare-and-set update on the version column

        Args:
            subscription: Entity carrying the version it was read at

        Returns:
            The same entity, reloaded with the incremented version

        Raises:
            StaleSubscriptionError: Row was changed by another writer
        """
        expected_version = subscription.version
        values = {name: getattr(subscription, name) for name in _MUTABLE_COLUMNS}
        values["version"] = expected_version + 1

        statement = (
            update(Subscription)
            .where(
                Subscription.id == subscription.id,
                Subscription.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)

        if result.rowcount != 1:
            raise StaleSubscriptionError(
                f"Subscription {subscription.id} was modified concurrently "
                f"(expected version {expected_version})"
            )

        # Reload so the identity map matches the row just written
        await self.session.refresh(subscription)
        return subscription

    async def list_by_statuses(self, statuses: List[SubscriptionStatus]) -> List[Subscription]:
        statement = (
            select(Subscription)
            .where(Subscription.status.in_(statuses))
            .order_by(Subscription.id)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def list_ending_before(
        self, statuses: List[SubscriptionStatus], moment: datetime
    ) -> List[Subscription]:
        statement = (
            select(Subscription)
            .where(
                Subscription.status.in_(statuses),
                Subscription.end_date.is_not(None),
                Subscription.end_date < moment,
            )
            .order_by(Subscription.id)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def count_by_status(self) -> Dict[SubscriptionStatus, int]:
        statement = select(Subscription.status, func.count(Subscription.id)).group_by(
            Subscription.status
        )
        result = await self.session.execute(statement)
        return {status: count for status, count in result.all()}
