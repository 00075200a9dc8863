from .base import BaseModel, generate_uuid
from .shop import Shop, ShopStatus, ShopType
from .subscription import Subscription, SubscriptionStatus, SubscriptionPlan, OPEN_STATUSES
from .subscription_lifecycle import PaymentOutcome
from .exceptions import (
    SubscriptionError,
    ConflictError,
    NotFoundError,
    InvalidStateError,
    RetryExhaustedError,
    GatewayUnavailableError,
    StaleSubscriptionError,
)

__all__ = [
    "BaseModel",
    "generate_uuid",
    "Shop",
    "ShopStatus",
    "ShopType",
    "Subscription",
    "SubscriptionStatus",
    "SubscriptionPlan",
    "OPEN_STATUSES",
    "PaymentOutcome",
    "SubscriptionError",
    "ConflictError",
    "NotFoundError",
    "InvalidStateError",
    "RetryExhaustedError",
    "GatewayUnavailableError",
    "StaleSubscriptionError",
]
