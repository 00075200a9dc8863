"""Subscription State Machine

Pure transition functions over Subscription. They mutate and return the
entity or raise a domain error; none of them performs I/O, so every
persistence and gateway concern stays in the use cases.

    (none)    --create-->                      pending
    pending   --approved-->                    active
    pending   --declined-->                    failed
    failed    --retry (attempts > 0)-->        pending
    active    --cancel-->                      cancelled
    active    --end passed, auto renew-->      pending (renewal)
    active    --end passed, no auto renew-->   expired
    cancelled --end passed-->                  expired
    renewal   --grace deadline passed-->       expired
"""

from calendar import monthrange
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from src.domain.exceptions import InvalidStateError, RetryExhaustedError
from src.domain.shop import ShopStatus
from src.domain.subscription import (
    OPEN_STATUSES,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)


class PaymentOutcome(str, Enum):
    """Outcome of a checkout session as reported by the gateway"""
    APPROVED = "approved"
    DECLINED = "declined"
    UNKNOWN = "unknown"


def add_months(moment: datetime, months: int) -> datetime:
    """Shift a datetime by whole months, clamping to the last day of month"""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    _, last_day = monthrange(year, month)
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def new_subscription(
    shop_id: int,
    plan: SubscriptionPlan,
    amount: Decimal,
    currency: str,
    auto_renew: bool,
    max_attempts: int,
    now: datetime,
) -> Subscription:
    return Subscription(
        shop_id=shop_id,
        plan=plan,
        amount=amount,
        currency=currency,
        status=SubscriptionStatus.PENDING,
        auto_renew=auto_renew,
        attempts_remaining=max_attempts,
        version=1,
        created_at=now,
        updated_at=now,
    )


def blocks_new_subscription(subscription: Optional[Subscription], now: datetime) -> bool:
    """
    Whether the shop's current subscription prevents creating another one

    Pending and active rows always block. A cancelled row blocks until its
    paid period ends, otherwise a new pending row would hide a shop that
    already paid for the running period.
    """
    if subscription is None:
        return False
    if subscription.status in OPEN_STATUSES:
        return True
    return (
        subscription.status == SubscriptionStatus.CANCELLED
        and subscription.end_date is not None
        and subscription.end_date > now
    )


def attach_session(
    subscription: Subscription,
    session_ref: str,
    checkout_url: str,
    now: datetime,
) -> Subscription:
    """Store a freshly issued checkout session, superseding any previous one"""
    if subscription.status != SubscriptionStatus.PENDING:
        raise InvalidStateError(
            f"Cannot attach a payment session to a {subscription.status.value} subscription"
        )
    subscription.payment_session_ref = session_ref
    subscription.checkout_url = checkout_url
    subscription.updated_at = now
    return subscription


def activate(subscription: Subscription, now: datetime, period_months: int) -> Subscription:
    if subscription.status != SubscriptionStatus.PENDING:
        raise InvalidStateError(
            f"Only pending subscriptions can be activated (status={subscription.status.value})"
        )
    if renewal_deadline_missed(subscription, now):
        raise InvalidStateError(
            f"Renewal of subscription {subscription.id} missed its grace deadline "
            f"{subscription.grace_deadline}"
        )

    if subscription.is_renewal and subscription.end_date is not None:
        # Renewal extends the previous period without a gap
        subscription.start_date = subscription.end_date
        subscription.end_date = add_months(subscription.end_date, period_months)
    else:
        subscription.start_date = now
        subscription.end_date = add_months(now, period_months)

    subscription.status = SubscriptionStatus.ACTIVE
    subscription.is_renewal = False
    subscription.grace_deadline = None
    subscription.updated_at = now
    return subscription


def mark_failed(subscription: Subscription, now: datetime) -> Subscription:
    """Record a declined payment. The retry budget is not consumed."""
    if subscription.status != SubscriptionStatus.PENDING:
        raise InvalidStateError(
            f"Only pending subscriptions can fail (status={subscription.status.value})"
        )
    subscription.status = SubscriptionStatus.FAILED
    subscription.updated_at = now
    return subscription


def apply_outcome(
    subscription: Subscription,
    outcome: PaymentOutcome,
    now: datetime,
    period_months: int,
) -> bool:
    """
    Apply a gateway outcome to a pending subscription

    A renewal whose grace deadline has passed expires on any known outcome;
    a late payment never extends the period.

    Returns:
        True if the subscription changed, False for an unknown outcome
    """
    if outcome != PaymentOutcome.UNKNOWN and renewal_deadline_missed(subscription, now):
        expire(subscription, now)
        return True
    if outcome == PaymentOutcome.APPROVED:
        activate(subscription, now, period_months)
        return True
    if outcome == PaymentOutcome.DECLINED:
        mark_failed(subscription, now)
        return True
    return False


def ensure_retryable(subscription: Subscription) -> None:
    if subscription.status != SubscriptionStatus.FAILED:
        raise InvalidStateError(
            f"Only failed payments can be retried (status={subscription.status.value})"
        )
    if subscription.attempts_remaining <= 0:
        raise RetryExhaustedError(
            f"No payment attempts remaining for subscription {subscription.id}"
        )


def begin_retry(subscription: Subscription, now: datetime) -> Subscription:
    """Consume one attempt and move back to pending. The old session is discarded."""
    ensure_retryable(subscription)
    subscription.attempts_remaining -= 1
    subscription.status = SubscriptionStatus.PENDING
    subscription.payment_session_ref = None
    subscription.checkout_url = None
    subscription.updated_at = now
    return subscription


def renewal_deadline_missed(subscription: Subscription, now: datetime) -> bool:
    return (
        subscription.is_renewal
        and subscription.grace_deadline is not None
        and subscription.grace_deadline < now
    )


def is_due_for_renewal(subscription: Subscription, now: datetime, grace_days: int) -> bool:
    return (
        subscription.status == SubscriptionStatus.ACTIVE
        and subscription.auto_renew
        and subscription.end_date is not None
        and subscription.end_date <= now
        and now <= subscription.end_date + timedelta(days=grace_days)
    )


def begin_renewal(subscription: Subscription, now: datetime, grace_days: int) -> Subscription:
    if subscription.status != SubscriptionStatus.ACTIVE or not subscription.auto_renew:
        raise InvalidStateError(
            f"Only active auto-renewing subscriptions can renew (status={subscription.status.value})"
        )
    if subscription.end_date is None or subscription.end_date > now:
        raise InvalidStateError(f"Subscription {subscription.id} is not due for renewal yet")

    subscription.status = SubscriptionStatus.PENDING
    subscription.is_renewal = True
    subscription.grace_deadline = subscription.end_date + timedelta(days=grace_days)
    subscription.payment_session_ref = None
    subscription.checkout_url = None
    subscription.updated_at = now
    return subscription


def cancel(subscription: Subscription, now: datetime) -> Subscription:
    """Stop auto renewal; the paid period keeps running until end_date"""
    if subscription.status != SubscriptionStatus.ACTIVE:
        raise InvalidStateError(
            f"Only active subscriptions can be cancelled (status={subscription.status.value})"
        )
    subscription.auto_renew = False
    subscription.status = SubscriptionStatus.CANCELLED
    subscription.updated_at = now
    return subscription


def is_due_for_expiry(subscription: Subscription, now: datetime, grace_days: int) -> bool:
    status = subscription.status

    if status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED):
        if subscription.end_date is None or subscription.end_date >= now:
            return False
        if status == SubscriptionStatus.CANCELLED or not subscription.auto_renew:
            return True
        # Auto renewal never started and the grace window is over
        return subscription.end_date + timedelta(days=grace_days) < now

    if status in (SubscriptionStatus.PENDING, SubscriptionStatus.FAILED):
        return renewal_deadline_missed(subscription, now)

    return False


def expire(subscription: Subscription, now: datetime) -> Subscription:
    if subscription.status == SubscriptionStatus.EXPIRED:
        raise InvalidStateError(f"Subscription {subscription.id} is already expired")
    subscription.status = SubscriptionStatus.EXPIRED
    subscription.auto_renew = False
    subscription.updated_at = now
    return subscription


def project_shop_status(
    subscription_status: Optional[SubscriptionStatus],
    shop_status: ShopStatus,
) -> ShopStatus:
    """
    Shop status implied by its current subscription

    A suspended shop is an administrative override and is returned unchanged.
    A shop without any subscription waits for payment.
    """
    if shop_status == ShopStatus.SUSPENDED:
        return ShopStatus.SUSPENDED
    if subscription_status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED):
        return ShopStatus.ACTIVE
    if subscription_status == SubscriptionStatus.EXPIRED:
        return ShopStatus.EXPIRED
    return ShopStatus.PENDING_PAYMENT
