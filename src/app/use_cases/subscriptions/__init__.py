"""Subscription lifecycle use cases"""
from .create_subscription import CreateSubscription
from .check_payment_status import CheckPaymentStatus
from .retry_payment import RetryPayment
from .renew_subscription import RenewSubscription
from .cancel_subscription import CancelSubscription
from .expiry_sweep import ExpirySweep
from .renew_due_subscriptions import RenewDueSubscriptions
from .handle_payment_notification import HandlePaymentNotification
from .get_subscription import GetSubscription, GetSubscriptionById
from .get_subscription_stats import GetSubscriptionStats
from .settings import LifecycleSettings
from .dtos import (
    CreateSubscriptionCommandDTO,
    SubscriptionDTO,
    SubscriptionActionResponseDTO,
    PaymentStatusResponseDTO,
    PaymentNotificationResultDTO,
    ExpirySweepResultDTO,
    RenewalRunResultDTO,
    SubscriptionStatsDTO,
    SweepCycleResultDTO,
)

__all__ = [
    "CreateSubscription",
    "CheckPaymentStatus",
    "RetryPayment",
    "RenewSubscription",
    "CancelSubscription",
    "ExpirySweep",
    "RenewDueSubscriptions",
    "HandlePaymentNotification",
    "GetSubscription",
    "GetSubscriptionById",
    "GetSubscriptionStats",
    "LifecycleSettings",
    "CreateSubscriptionCommandDTO",
    "SubscriptionDTO",
    "SubscriptionActionResponseDTO",
    "PaymentStatusResponseDTO",
    "PaymentNotificationResultDTO",
    "ExpirySweepResultDTO",
    "RenewalRunResultDTO",
    "SubscriptionStatsDTO",
    "SweepCycleResultDTO",
]
