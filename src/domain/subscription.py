"""Subscription Domain Entity

Tracks the paid plan that keeps a shop publicly visible, together with the
payment session and retry budget used to collect it.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Numeric, String, text
from src.domain.base import BaseModel, IdType


class SubscriptionStatus(str, Enum):
    """Subscription status types"""
    PENDING = "pending"        # Awaiting payment confirmation
    ACTIVE = "active"          # Paid, shop visible
    EXPIRED = "expired"        # Period ended without renewal (terminal)
    FAILED = "failed"          # Payment declined, retryable while attempts remain
    CANCELLED = "cancelled"    # User cancelled, runs until end_date


class SubscriptionPlan(str, Enum):
    """Available plans"""
    RETAILER = "retailer"
    WHOLESALER = "wholesaler"


# Statuses that occupy the single "open" slot of a shop
OPEN_STATUSES = (SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE)


class Subscription(BaseModel, table=True):
    """
    Subscription - Paid plan gating shop visibility

    Domain Rules:
    - At most one pending/active subscription per shop (partial unique index)
    - Status transitions go through src.domain.subscription_lifecycle only
    - attempts_remaining never goes below 0
    - payment_session_ref is replaced, never reused, on retry and renewal
    - version is bumped on every update (optimistic concurrency)
    - Rows are kept after expiry; the newest row is the shop's current one
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        Index('ix_subscriptions_shop_id', 'shop_id'),
        Index('ix_subscriptions_status', 'status'),
        Index('ix_subscriptions_payment_session_ref', 'payment_session_ref'),
        # Enum columns store member names
        Index(
            'uq_subscriptions_open_per_shop',
            'shop_id',
            unique=True,
            sqlite_where=text("status IN ('PENDING', 'ACTIVE')"),
            postgresql_where=text("status IN ('PENDING', 'ACTIVE')"),
        ),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique subscription identifier (auto-increment)"
    )

    shop_id: int = Field(
        sa_column=Column(IdType, ForeignKey("shops.id"), nullable=False),
        description="Foreign key to Shop"
    )

    plan: SubscriptionPlan = Field(
        description="Subscription plan (retailer, wholesaler)"
    )

    amount: Decimal = Field(
        sa_column=Column(Numeric(12, 2), nullable=False),
        description="Price charged per period (precision: 12,2)"
    )

    currency: str = Field(
        default="ARS",
        sa_column=Column(String(3), nullable=False),
        description="Currency code (ISO 4217)"
    )

    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.PENDING,
        description="Subscription status (pending, active, expired, failed, cancelled)"
    )

    auto_renew: bool = Field(
        default=True,
        description="Renew automatically when the period ends"
    )

    start_date: Optional[datetime] = Field(
        default=None,
        description="Start of the paid period (set on activation)"
    )

    end_date: Optional[datetime] = Field(
        default=None,
        description="End of the paid period (set on activation)"
    )

    attempts_remaining: int = Field(
        default=3,
        ge=0,
        description="Payment retries left after a decline"
    )

    payment_session_ref: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Opaque checkout session handle issued by the payment gateway"
    )

    checkout_url: Optional[str] = Field(
        default=None,
        sa_column=Column(String(1024), nullable=True),
        description="Checkout URL (init point) of the current payment session"
    )

    is_renewal: bool = Field(
        default=False,
        description="True while a renewal payment is being collected"
    )

    grace_deadline: Optional[datetime] = Field(
        default=None,
        description="Renewal must be paid before this instant or the subscription expires"
    )

    version: int = Field(
        default=1,
        description="Optimistic concurrency counter"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Subscription creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "shop_id": 7,
                "plan": "retailer",
                "amount": "9999.00",
                "currency": "ARS",
                "status": "active",
                "auto_renew": True,
                "start_date": "2024-01-01T00:00:00Z",
                "end_date": "2024-02-01T00:00:00Z",
                "attempts_remaining": 3,
                "payment_session_ref": "shop-7-3f0c1a",
                "checkout_url": "https://www.mercadopago.com.ar/checkout/v1/redirect?pref_id=123",
                "is_renewal": False,
                "grace_deadline": None,
                "version": 3,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:05:00Z"
            }
        }
