"""Bounded calls to the payment gateway

Every gateway call is capped by a timeout. Timeouts and gateway outages
never propagate: a session that could not be opened is None and an
outcome that could not be read is UNKNOWN.
"""

import asyncio
import logging
from typing import Optional
from src.app.services.payment_gateway import PaymentGateway, PaymentSession
from src.domain.exceptions import GatewayUnavailableError
from src.domain.subscription import Subscription
from src.domain.subscription_lifecycle import PaymentOutcome

logger = logging.getLogger(__name__)


class GatewayCalls:
    def __init__(self, gateway: PaymentGateway, timeout_seconds: float):
        self.gateway = gateway
        self.timeout_seconds = timeout_seconds

    async def open_session(self, subscription: Subscription) -> Optional[PaymentSession]:
        try:
            return await asyncio.wait_for(
                self.gateway.create_session(
                    subscription.shop_id, subscription.plan, subscription.amount
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Payment session for subscription {subscription.id} timed out "
                f"after {self.timeout_seconds}s"
            )
        except GatewayUnavailableError as e:
            logger.warning(
                f"Payment session for subscription {subscription.id} not created: {e.message}"
            )
        return None

    async def fetch_outcome(self, session_ref: str) -> PaymentOutcome:
        try:
            outcome = await asyncio.wait_for(
                self.gateway.get_outcome(session_ref),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Outcome query for session {session_ref} timed out; treating as unknown"
            )
            return PaymentOutcome.UNKNOWN
        except GatewayUnavailableError as e:
            logger.warning(
                f"Outcome query for session {session_ref} failed ({e.message}); treating as unknown"
            )
            return PaymentOutcome.UNKNOWN

        logger.debug(f"Gateway outcome for session {session_ref}: {outcome.value}")
        return outcome
