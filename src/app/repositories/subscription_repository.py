"""Subscription Repository Interface

Defines the contract for subscription persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional
from src.domain.subscription import Subscription, SubscriptionStatus


class SubscriptionRepository(ABC):
    """
    Repository interface for Subscription persistence

    One row per subscription attempt; a shop's current subscription is its
    most recently created row. Updates are guarded by the version column.
    """

    @abstractmethod
    async def get_current_by_shop_id(self, shop_id: int) -> Optional[Subscription]:
        """
        Retrieve the current (most recent) subscription of a shop

        Args:
            shop_id: Shop identifier

        Returns:
            Subscription if the shop ever subscribed, None otherwise
        """
        pass

    @abstractmethod
    async def get_open_by_shop_id(self, shop_id: int) -> Optional[Subscription]:
        """
        Retrieve the pending or active subscription of a shop, if any

        Args:
            shop_id: Shop identifier

        Returns:
            Subscription with status pending/active, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        """
        Retrieve subscription by ID

        Args:
            subscription_id: Subscription ID

        Returns:
            Subscription if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_session_ref(self, session_ref: str) -> Optional[Subscription]:
        """
        Retrieve the subscription currently holding a payment session

        Args:
            session_ref: Gateway session reference

        Returns:
            Subscription if the reference is current, None if unknown or superseded
        """
        pass

    @abstractmethod
    async def create(self, subscription: Subscription) -> Subscription:
        """
        Create a new subscription

        Args:
            subscription: Subscription entity to persist

        Returns:
            Created Subscription with generated ID

        Raises:
            ConflictError: If the shop already has a pending/active subscription
        """
        pass

    @abstractmethod
    async def update(self, subscription: Subscription) -> Subscription:
        """
        Persist changes to a subscription read at subscription.version

        Args:
            subscription: Subscription entity with updated values

        Returns:
            Updated Subscription with its version incremented

        Raises:
            StaleSubscriptionError: If another writer updated the row first
        """
        pass

    @abstractmethod
    async def list_by_statuses(self, statuses: List[SubscriptionStatus]) -> List[Subscription]:
        """
        Retrieve all subscriptions in the given statuses

        Used by the expiry sweep and renewal jobs.
        """
        pass

    @abstractmethod
    async def list_ending_before(
        self, statuses: List[SubscriptionStatus], moment: datetime
    ) -> List[Subscription]:
        """
        Retrieve subscriptions in the given statuses whose end_date is before moment
        """
        pass

    @abstractmethod
    async def count_by_status(self) -> Dict[SubscriptionStatus, int]:
        """
        Count subscriptions per status

        Returns:
            Mapping of status to number of rows (statuses without rows omitted)
        """
        pass
