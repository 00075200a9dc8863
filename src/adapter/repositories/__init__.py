from .shop_repository import SqlAlchemyShopRepository
from .subscription_repository import SqlAlchemySubscriptionRepository

__all__ = [
    "SqlAlchemyShopRepository",
    "SqlAlchemySubscriptionRepository",
]
