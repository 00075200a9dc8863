"""Lifecycle settings shared by the subscription use cases"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict
from src.domain.subscription import SubscriptionPlan


def _default_prices() -> Dict[str, Decimal]:
    return {
        SubscriptionPlan.RETAILER.value: Decimal("9999"),
        SubscriptionPlan.WHOLESALER.value: Decimal("19999"),
    }


@dataclass(frozen=True)
class LifecycleSettings:
    max_payment_attempts: int = 3
    period_months: int = 1
    renewal_grace_days: int = 3
    currency: str = "ARS"
    gateway_timeout_seconds: float = 10.0
    plan_prices: Dict[str, Decimal] = field(default_factory=_default_prices)

    @classmethod
    def from_config(cls, config) -> "LifecycleSettings":
        return cls(
            max_payment_attempts=int(config.SUBSCRIPTION_MAX_PAYMENT_ATTEMPTS),
            period_months=int(config.SUBSCRIPTION_PERIOD_MONTHS),
            renewal_grace_days=int(config.SUBSCRIPTION_RENEWAL_GRACE_DAYS),
            currency=config.SUBSCRIPTION_CURRENCY,
            gateway_timeout_seconds=float(config.PAYMENT_GATEWAY_TIMEOUT_SECONDS),
            plan_prices={
                plan: Decimal(str(price)) for plan, price in config.PLAN_PRICES.items()
            },
        )

    def price_for(self, plan: SubscriptionPlan) -> Decimal:
        return self.plan_prices[plan.value]
