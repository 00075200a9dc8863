"""Payment Gateway Interface

Contract of the external payment provider consumed by the subscription
lifecycle. The gateway owns checkout sessions; callers only keep the
session reference and always re-query the outcome.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from src.domain.subscription import SubscriptionPlan
from src.domain.subscription_lifecycle import PaymentOutcome


@dataclass(frozen=True)
class PaymentSession:
    """Hosted checkout session issued by the gateway"""

    session_ref: str
    checkout_url: str


class PaymentGateway(ABC):
    """
    Abstract payment gateway

    Implementations raise GatewayUnavailableError on timeouts and non-2xx
    answers. get_outcome may return UNKNOWN indefinitely.
    """

    @abstractmethod
    async def create_session(
        self, shop_id: int, plan: SubscriptionPlan, amount: Decimal
    ) -> PaymentSession:
        """
        Create a hosted checkout session

        Args:
            shop_id: Shop being subscribed
            plan: Subscription plan
            amount: Amount to charge

        Returns:
            PaymentSession with the session reference and checkout URL

        Raises:
            GatewayUnavailableError: Gateway unreachable or rejected the request
        """
        pass

    @abstractmethod
    async def get_outcome(self, session_ref: str) -> PaymentOutcome:
        """
        Report the payment outcome of a checkout session

        Args:
            session_ref: Reference returned by create_session

        Returns:
            APPROVED, DECLINED or UNKNOWN

        Raises:
            GatewayUnavailableError: Gateway unreachable or rejected the request
        """
        pass
