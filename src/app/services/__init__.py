from .unit_of_work import UnitOfWork
from .payment_gateway import PaymentGateway, PaymentSession
from .shop_lock import ShopLock

__all__ = [
    "UnitOfWork",
    "PaymentGateway",
    "PaymentSession",
    "ShopLock",
]
