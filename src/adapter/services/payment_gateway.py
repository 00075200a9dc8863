"""Payment Gateway Implementations

Provides concrete implementations of the checkout gateway.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional
import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from src.app.services.payment_gateway import PaymentGateway, PaymentSession
from src.domain.base import generate_uuid
from src.domain.exceptions import GatewayUnavailableError
from src.domain.subscription import SubscriptionPlan
from src.domain.subscription_lifecycle import PaymentOutcome

logger = logging.getLogger(__name__)

PLAN_TITLES = {
    SubscriptionPlan.RETAILER: "Plan Minorista",
    SubscriptionPlan.WHOLESALER: "Plan Mayorista",
}

# Mercado Pago payment statuses that end a checkout without charging
DECLINED_PAYMENT_STATUSES = {"rejected", "cancelled", "refunded", "charged_back"}


class MercadoPagoPaymentGateway(PaymentGateway):
    """
    Payment gateway backed by Mercado Pago Checkout Pro

    - create_session creates a checkout preference; the session reference is
      the preference's external_reference, the checkout URL its init_point
    - get_outcome searches payments by external_reference
    - Transport errors are retried with exponential backoff, then reported
      as GatewayUnavailableError together with non-2xx answers
    """

    def __init__(
        self,
        access_token: str,
        api_url: str = "https://api.mercadopago.com",
        currency: str = "ARS",
        timeout: float = 10.0,
        max_retries: int = 2,
        notification_url: Optional[str] = None,
        back_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Mercado Pago gateway

        Args:
            access_token: Mercado Pago private access token
            api_url: API base URL
            currency: Currency of the charged amounts
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first attempt on transport errors
            notification_url: Webhook URL Mercado Pago notifies on payment updates
            back_url: URL the buyer returns to after checkout
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.currency = currency
        self.timeout = timeout
        self.max_retries = max_retries
        self.notification_url = notification_url
        self.back_url = back_url
        self.transport = transport

    async def create_session(
        self, shop_id: int, plan: SubscriptionPlan, amount: Decimal
    ) -> PaymentSession:
        session_ref = f"shop-{shop_id}-{generate_uuid()}"
        payload = {
            "items": [
                {
                    "id": plan.value,
                    "title": PLAN_TITLES.get(plan, plan.value),
                    "quantity": 1,
                    "unit_price": float(amount),
                    "currency_id": self.currency,
                }
            ],
            "external_reference": session_ref,
        }
        if self.notification_url:
            payload["notification_url"] = self.notification_url
        if self.back_url:
            payload["back_urls"] = {
                "success": self.back_url,
                "pending": self.back_url,
                "failure": self.back_url,
            }
            payload["auto_return"] = "approved"

        data = await self._request("POST", "/checkout/preferences", json=payload)

        checkout_url = data.get("init_point")
        if not checkout_url:
            raise GatewayUnavailableError(
                f"Mercado Pago preference for shop {shop_id} has no init_point"
            )

        logger.info(
            f"Created Mercado Pago preference {data.get('id')} for shop {shop_id} "
            f"(session_ref={session_ref})"
        )
        return PaymentSession(session_ref=session_ref, checkout_url=checkout_url)

    async def get_outcome(self, session_ref: str) -> PaymentOutcome:
        data = await self._request(
            "GET",
            "/v1/payments/search",
            params={
                "external_reference": session_ref,
                "sort": "date_created",
                "criteria": "desc",
            },
        )

        payments = data.get("results") or []
        statuses = [payment.get("status") for payment in payments]

        if "approved" in statuses:
            return PaymentOutcome.APPROVED
        if statuses and statuses[0] in DECLINED_PAYMENT_STATUSES:
            return PaymentOutcome.DECLINED
        return PaymentOutcome.UNKNOWN

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                headers=headers,
                transport=self.transport,
            ) as client:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.max_retries + 1),
                    wait=wait_exponential(multiplier=0.5, max=4),
                    retry=retry_if_exception_type(httpx.TransportError),
                    before_sleep=before_sleep_log(logger, logging.WARNING),
                    reraise=True,
                ):
                    with attempt:
                        response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Mercado Pago {method} {path} answered {e.response.status_code}"
            )
            raise GatewayUnavailableError(
                f"Payment gateway answered {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Mercado Pago {method} {path} failed: {e}")
            raise GatewayUnavailableError(f"Payment gateway unreachable: {e}") from e


class SandboxPaymentGateway(PaymentGateway):
    """
    In-memory payment gateway

    Useful for development and testing. Sessions stay UNKNOWN until an
    outcome is set; set_available(False) simulates an outage.
    """

    def __init__(self, checkout_base_url: str = "https://sandbox.checkout.local"):
        self.checkout_base_url = checkout_base_url.rstrip("/")
        self.outcomes: Dict[str, PaymentOutcome] = {}
        self.available = True
        self.sessions_created = 0

    async def create_session(
        self, shop_id: int, plan: SubscriptionPlan, amount: Decimal
    ) -> PaymentSession:
        if not self.available:
            raise GatewayUnavailableError("Sandbox gateway is unavailable")

        session_ref = f"sandbox-{shop_id}-{generate_uuid()}"
        self.outcomes[session_ref] = PaymentOutcome.UNKNOWN
        self.sessions_created += 1
        logger.info(
            f"[SANDBOX] Created session {session_ref} for shop {shop_id}: "
            f"{plan.value} {amount}"
        )
        return PaymentSession(
            session_ref=session_ref,
            checkout_url=f"{self.checkout_base_url}/checkout/{session_ref}",
        )

    async def get_outcome(self, session_ref: str) -> PaymentOutcome:
        if not self.available:
            raise GatewayUnavailableError("Sandbox gateway is unavailable")
        return self.outcomes.get(session_ref, PaymentOutcome.UNKNOWN)

    def set_outcome(self, session_ref: str, outcome: PaymentOutcome) -> None:
        self.outcomes[session_ref] = outcome

    def set_available(self, available: bool) -> None:
        self.available = available


def create_payment_gateway(
    kind: str,
    access_token: str = "",
    api_url: str = "https://api.mercadopago.com",
    currency: str = "ARS",
    timeout: float = 10.0,
    max_retries: int = 2,
    notification_url: Optional[str] = None,
    back_url: Optional[str] = None,
) -> PaymentGateway:
    """
    Factory function to create the configured payment gateway

    Args:
        kind: "mercadopago" or "sandbox"

    Returns:
        PaymentGateway instance
    """
    if kind == "mercadopago":
        if not access_token:
            raise ValueError("MERCADOPAGO_ACCESS_TOKEN is required for the mercadopago gateway")
        return MercadoPagoPaymentGateway(
            access_token=access_token,
            api_url=api_url,
            currency=currency,
            timeout=timeout,
            max_retries=max_retries,
            notification_url=notification_url,
            back_url=back_url,
        )
    if kind == "sandbox":
        logger.warning("Using sandbox payment gateway; no real payments are collected")
        return SandboxPaymentGateway()
    raise ValueError(f"Unknown payment gateway: {kind}")
