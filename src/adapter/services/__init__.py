from .unit_of_work import SqlAlchemyUnitOfWork
from .shop_lock import InProcessShopLock
from .payment_gateway import (
    MercadoPagoPaymentGateway,
    SandboxPaymentGateway,
    create_payment_gateway,
)

__all__ = [
    "SqlAlchemyUnitOfWork",
    "InProcessShopLock",
    "MercadoPagoPaymentGateway",
    "SandboxPaymentGateway",
    "create_payment_gateway",
]
