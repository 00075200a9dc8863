from .shop_repository import ShopRepository
from .subscription_repository import SubscriptionRepository

__all__ = [
    "ShopRepository",
    "SubscriptionRepository",
]
