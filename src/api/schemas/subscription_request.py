"""Request schemas for Subscription API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from src.domain.subscription import SubscriptionPlan


class CreateSubscriptionRequestSchema(BaseModel):
    """
    Request schema for subscribing a shop

    Used for POST /subscriptions endpoint.
    """

    shop_id: int = Field(
        ...,
        gt=0,
        description="Shop identifier (required)"
    )

    plan: SubscriptionPlan = Field(
        ...,
        description="Subscription plan: retailer or wholesaler"
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


class PaymentNotificationSchema(BaseModel):
    """
    Gateway webhook payload

    Only the session reference (external_reference) is used; the payment
    outcome is always re-queried from the gateway.
    """

    external_reference: Optional[str] = Field(
        default=None,
        description="Session reference the payment belongs to"
    )

    type: Optional[str] = Field(
        default=None,
        description="Notification topic sent by the gateway"
    )

    data: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Raw notification data"
    )

    def session_ref(self) -> Optional[str]:
        if self.external_reference:
            return self.external_reference
        if self.data:
            return self.data.get("external_reference")
        return None

    class Config:
        json_schema_extra = {
            "example": {
                "type": "payment",
                "external_reference": "shop-7-3f2b6c1e9a0d4e5f8a7b6c5d4e3f2a1b"
            }
        }
