"""Integration tests for Subscription API endpoints"""

import pytest
from datetime import datetime
from decimal import Decimal
from httpx import AsyncClient

from src.domain.subscription_lifecycle import PaymentOutcome, add_months


async def register_shop(client: AsyncClient, shop_type: str = "retailer") -> dict:
    response = await client.post(
        "/api/shops",
        json={"owner_id": "user_42", "name": "Pet Corner", "shop_type": shop_type},
    )
    assert response.status_code == 201
    return response.json()


async def subscribe(client: AsyncClient, shop_id: int, plan: str = "retailer", auto_renew: bool = True):
    return await client.post(
        "/api/subscriptions",
        json={"shop_id": shop_id, "plan": plan, "auto_renew": auto_renew},
    )


def session_ref_of(gateway, subscription: dict) -> str:
    """Session ref behind the checkout URL the sandbox handed out"""
    return subscription["init_point"].rsplit("/", 1)[-1]


class TestSubscriptionAPIIntegration:
    """Integration test suite for Subscription API endpoints"""

    @pytest.mark.asyncio
    async def test_subscribe_and_activate(self, client: AsyncClient, gateway):
        """Subscribing returns a checkout URL; an approved payment activates shop and subscription"""
        shop = await register_shop(client)
        assert shop["status"] == "pending_payment"
        assert shop["visible"] is False

        # Act - subscribe
        response = await subscribe(client, shop["id"])

        # Assert
        assert response.status_code == 201
        data = response.json()
        subscription = data["subscription"]
        assert subscription["status"] == "pending"
        assert subscription["shop_id"] == shop["id"]
        assert Decimal(subscription["amount"]) == Decimal("9999")
        assert subscription["currency"] == "ARS"
        assert subscription["attempts_remaining"] == 3
        assert data["init_point"]
        assert data["init_point"] == subscription["init_point"]

        # Payment not yet seen by the gateway
        response = await client.get(f"/api/subscriptions/{subscription['id']}/payment-status")
        assert response.status_code == 200
        assert response.json()["status"] == "pending"

        # Approve and poll
        gateway.set_outcome(session_ref_of(gateway, subscription), PaymentOutcome.APPROVED)
        response = await client.get(f"/api/subscriptions/{subscription['id']}/payment-status")

        assert response.status_code == 200
        assert response.json()["status"] == "active"

        response = await client.get(f"/api/subscriptions/{shop['id']}")
        current = response.json()
        assert current["status"] == "active"
        start = datetime.fromisoformat(current["start_date"])
        end = datetime.fromisoformat(current["end_date"])
        assert end == add_months(start, 1)

        response = await client.get(f"/api/shops/{shop['id']}")
        assert response.json()["status"] == "active"
        assert response.json()["visible"] is True

    @pytest.mark.asyncio
    async def test_wholesaler_plan_price(self, client: AsyncClient):
        shop = await register_shop(client, shop_type="wholesaler")

        response = await subscribe(client, shop["id"], plan="wholesaler")

        assert response.status_code == 201
        assert Decimal(response.json()["subscription"]["amount"]) == Decimal("19999")

    @pytest.mark.asyncio
    async def test_second_subscription_conflicts(self, client: AsyncClient):
        """A shop with a pending subscription cannot subscribe again"""
        shop = await register_shop(client)
        first = await subscribe(client, shop["id"])
        assert first.status_code == 201

        response = await subscribe(client, shop["id"], plan="wholesaler")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SUBSCRIPTION_CONFLICT"

    @pytest.mark.asyncio
    async def test_subscribe_unknown_shop(self, client: AsyncClient):
        response = await subscribe(client, 999)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SHOP_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_subscribe_validation_error(self, client: AsyncClient):
        response = await client.post("/api/subscriptions", json={"shop_id": 1, "plan": "platinum"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_subscribe_while_gateway_down(self, client: AsyncClient, gateway):
        """The subscription is stored without a link; retry issues one later"""
        shop = await register_shop(client)
        gateway.set_available(False)

        response = await subscribe(client, shop["id"])

        assert response.status_code == 201
        data = response.json()
        assert data["init_point"] is None
        assert data["subscription"]["status"] == "pending"

        gateway.set_available(True)
        response = await client.post(f"/api/subscriptions/{data['subscription']['id']}/retry")

        assert response.status_code == 200
        assert response.json()["init_point"]
        assert response.json()["subscription"]["attempts_remaining"] == 3

    @pytest.mark.asyncio
    async def test_declined_payment_retry_until_exhausted(self, client: AsyncClient, gateway):
        """Each retry consumes an attempt; with none left the retry is rejected"""
        shop = await register_shop(client)
        subscription = (await subscribe(client, shop["id"])).json()["subscription"]
        subscription_id = subscription["id"]

        for expected_remaining in (2, 1, 0):
            gateway.set_outcome(session_ref_of(gateway, subscription), PaymentOutcome.DECLINED)
            response = await client.get(f"/api/subscriptions/{subscription_id}/payment-status")
            assert response.json()["status"] == "failed"

            response = await client.get(f"/api/shops/{shop['id']}")
            assert response.json()["visible"] is False

            response = await client.post(f"/api/subscriptions/{subscription_id}/retry")
            assert response.status_code == 200
            subscription = response.json()["subscription"]
            assert subscription["status"] == "pending"
            assert subscription["attempts_remaining"] == expected_remaining

        gateway.set_outcome(session_ref_of(gateway, subscription), PaymentOutcome.DECLINED)
        await client.get(f"/api/subscriptions/{subscription_id}/payment-status")

        response = await client.post(f"/api/subscriptions/{subscription_id}/retry")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "RETRY_EXHAUSTED"
        assert gateway.sessions_created == 4

    @pytest.mark.asyncio
    async def test_retry_payment_alias(self, client: AsyncClient, gateway):
        shop = await register_shop(client)
        subscription = (await subscribe(client, shop["id"])).json()["subscription"]
        gateway.set_outcome(session_ref_of(gateway, subscription), PaymentOutcome.DECLINED)
        await client.get(f"/api/subscriptions/{subscription['id']}/payment-status")

        response = await client.post(f"/api/subscriptions/{subscription['id']}/retry-payment")

        assert response.status_code == 200
        assert response.json()["subscription"]["attempts_remaining"] == 2

    @pytest.mark.asyncio
    async def test_retry_pending_with_link_is_invalid(self, client: AsyncClient):
        shop = await register_shop(client)
        subscription = (await subscribe(client, shop["id"])).json()["subscription"]

        response = await client.post(f"/api/subscriptions/{subscription['id']}/retry")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_retry_unknown_subscription(self, client: AsyncClient):
        response = await client.post("/api/subscriptions/999/retry")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SUBSCRIPTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_cancel_keeps_shop_visible(self, client: AsyncClient, gateway):
        shop = await register_shop(client)
        subscription = (await subscribe(client, shop["id"])).json()["subscription"]
        gateway.set_outcome(session_ref_of(gateway, subscription), PaymentOutcome.APPROVED)
        await client.get(f"/api/subscriptions/{subscription['id']}/payment-status")

        response = await client.delete(f"/api/subscriptions/{shop['id']}")

        assert response.status_code == 200
        cancelled = response.json()["subscription"]
        assert cancelled["status"] == "cancelled"
        assert cancelled["auto_renew"] is False

        response = await client.get(f"/api/shops/{shop['id']}")
        assert response.json()["status"] == "active"

        # Still within the paid period
        response = await subscribe(client, shop["id"])
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_cancel_without_active_subscription(self, client: AsyncClient):
        shop = await register_shop(client)
        await subscribe(client, shop["id"])

        response = await client.delete(f"/api/subscriptions/{shop['id']}")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_get_subscription_not_found(self, client: AsyncClient):
        shop = await register_shop(client)

        response = await client.get(f"/api/subscriptions/{shop['id']}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SUBSCRIPTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_get_subscription_by_id(self, client: AsyncClient):
        shop = await register_shop(client)
        subscription = (await subscribe(client, shop["id"])).json()["subscription"]

        response = await client.get(f"/api/subscriptions/by-id/{subscription['id']}")

        assert response.status_code == 200
        assert response.json()["shop_id"] == shop["id"]

        response = await client.get("/api/subscriptions/by-id/999")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_payment_webhook_activates(self, client: AsyncClient, gateway):
        shop = await register_shop(client)
        subscription = (await subscribe(client, shop["id"])).json()["subscription"]
        session_ref = session_ref_of(gateway, subscription)
        gateway.set_outcome(session_ref, PaymentOutcome.APPROVED)

        response = await client.post(
            "/api/subscriptions/webhooks/payment",
            json={"type": "payment", "data": {"external_reference": session_ref}},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}

        response = await client.get(f"/api/subscriptions/{shop['id']}")
        assert response.json()["status"] == "active"

    @pytest.mark.asyncio
    async def test_payment_webhook_unknown_reference_is_acknowledged(self, client: AsyncClient):
        response = await client.post(
            "/api/subscriptions/webhooks/payment",
            json={"type": "payment", "external_reference": "unknown-ref"},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}

        response = await client.post("/api/subscriptions/webhooks/payment", json={"type": "test"})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, gateway):
        first = await register_shop(client)
        second = await register_shop(client, shop_type="wholesaler")
        subscription = (await subscribe(client, first["id"])).json()["subscription"]
        await subscribe(client, second["id"], plan="wholesaler")
        gateway.set_outcome(session_ref_of(gateway, subscription), PaymentOutcome.APPROVED)
        await client.get(f"/api/subscriptions/{subscription['id']}/payment-status")

        response = await client.get("/api/subscriptions/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["by_status"]["active"] == 1
        assert data["by_status"]["pending"] == 1
        assert Decimal(data["monthly_recurring_revenue"]) == Decimal("9999")

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
