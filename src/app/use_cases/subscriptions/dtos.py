"""Data Transfer Objects for Subscription Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from src.domain.subscription import Subscription, SubscriptionPlan


class CreateSubscriptionCommandDTO(BaseModel):
    """
    Command DTO for subscribing a shop

    Used as input to CreateSubscription use case. The amount is taken
    from the plan catalog, never from the caller.
    """

    shop_id: int = Field(
        ...,
        gt=0,
        description="Shop identifier"
    )

    plan: SubscriptionPlan = Field(
        ...,
        description="Subscription plan (retailer, wholesaler)"
    )

    auto_renew: bool = Field(
        default=True,
        description="Renew automatically at the end of each period"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "shop_id": 7,
                "plan": "retailer",
                "auto_renew": True
            }
        }


class SubscriptionDTO(BaseModel):
    """
    Response DTO describing a subscription

    Returned by every subscription use case.
    """

    id: int = Field(..., description="Subscription ID")
    shop_id: int = Field(..., description="Shop identifier")
    plan: str = Field(..., description="Subscription plan")
    amount: Decimal = Field(..., description="Price per period")
    currency: str = Field(..., description="Currency code")
    status: str = Field(..., description="pending, active, expired, failed or cancelled")
    auto_renew: bool = Field(..., description="Renews automatically")
    start_date: Optional[datetime] = Field(default=None, description="Start of the paid period")
    end_date: Optional[datetime] = Field(default=None, description="End of the paid period")
    attempts_remaining: int = Field(..., description="Payment retries left")
    init_point: Optional[str] = Field(
        default=None,
        description="Checkout URL of the current payment session"
    )
    is_renewal: bool = Field(default=False, description="Renewal payment in progress")
    grace_deadline: Optional[datetime] = Field(
        default=None,
        description="Renewal must be paid before this instant"
    )
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "id": 1,
                "shop_id": 7,
                "plan": "retailer",
                "amount": "9999.00",
                "currency": "ARS",
                "status": "pending",
                "auto_renew": True,
                "start_date": None,
                "end_date": None,
                "attempts_remaining": 3,
                "init_point": "https://www.mercadopago.com.ar/checkout/v1/redirect?pref_id=123",
                "is_renewal": False,
                "grace_deadline": None,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }


class SubscriptionActionResponseDTO(BaseModel):
    """
    Response DTO for create, retry, renew and cancel

    init_point is absent when no new checkout is needed (already resolved)
    or when the gateway could not issue one right now.
    """

    subscription: SubscriptionDTO = Field(..., description="Subscription after the operation")
    init_point: Optional[str] = Field(default=None, description="Checkout URL to open")
    message: str = Field(..., description="Human-readable outcome")


class PaymentStatusResponseDTO(BaseModel):
    """Response DTO for CheckPaymentStatus"""

    subscription_id: int = Field(..., description="Subscription ID")
    status: str = Field(..., description="Subscription status after reconciliation")
    message: str = Field(..., description="Human-readable payment status")
    attempts_remaining: int = Field(..., description="Payment retries left")

    class Config:
        json_schema_extra = {
            "example": {
                "subscription_id": 1,
                "status": "pending",
                "message": "Payment pending confirmation, try again later",
                "attempts_remaining": 3
            }
        }


class PaymentNotificationResultDTO(BaseModel):
    """Result of processing a gateway webhook notification"""

    session_ref: str = Field(..., description="Session reference from the notification")
    matched: bool = Field(..., description="Whether a current subscription holds the session")
    status: Optional[str] = Field(default=None, description="Subscription status after reconciliation")


class ExpirySweepResultDTO(BaseModel):
    """Result of one expiry sweep"""

    candidates_checked: int = Field(..., description="Subscriptions inspected")
    expired_count: int = Field(..., description="Subscriptions transitioned to expired")
    skipped_count: int = Field(default=0, description="Subscriptions skipped after a concurrent change")
    expired_subscription_ids: List[int] = Field(default_factory=list)
    sweep_time: datetime = Field(..., description="Reference instant of the sweep")
    execution_time_ms: int = Field(..., description="Sweep duration in milliseconds")


class RenewalRunResultDTO(BaseModel):
    """Result of one renewal pass"""

    due_count: int = Field(..., description="Subscriptions due for renewal or session reissue")
    renewed_count: int = Field(..., description="Renewals started or resumed")
    sessions_issued: int = Field(..., description="Checkout sessions created")
    failed_count: int = Field(..., description="Renewals that returned an error")
    renewed_subscription_ids: List[int] = Field(default_factory=list)


class SubscriptionStatsDTO(BaseModel):
    """Aggregate subscription figures"""

    total: int = Field(..., description="All subscription rows")
    by_status: Dict[str, int] = Field(..., description="Rows per status")
    monthly_recurring_revenue: Decimal = Field(..., description="Sum of active and still-running cancelled subscription amounts")
    currency: str = Field(..., description="Currency of the revenue figure")

    class Config:
        json_schema_extra = {
            "example": {
                "total": 12,
                "by_status": {"active": 8, "pending": 2, "failed": 1, "expired": 1, "cancelled": 0},
                "monthly_recurring_revenue": "99992.00",
                "currency": "ARS"
            }
        }


def to_subscription_dto(subscription: Subscription) -> SubscriptionDTO:
    return SubscriptionDTO(
        id=subscription.id,
        shop_id=subscription.shop_id,
        plan=subscription.plan.value,
        amount=subscription.amount,
        currency=subscription.currency,
        status=subscription.status.value,
        auto_renew=subscription.auto_renew,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        attempts_remaining=subscription.attempts_remaining,
        init_point=subscription.checkout_url,
        is_renewal=subscription.is_renewal,
        grace_deadline=subscription.grace_deadline,
        created_at=subscription.created_at,
        updated_at=subscription.updated_at,
    )


class SweepCycleResultDTO(BaseModel):
    """Result of one sweeper cycle: renewals first, then expiries"""

    renewals: RenewalRunResultDTO
    expiry: ExpirySweepResultDTO
