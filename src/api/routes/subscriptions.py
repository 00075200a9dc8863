"""Subscription API Routes

FastAPI routes for the shop subscription lifecycle.
"""

import logging
from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.subscription_request import (
    CreateSubscriptionRequestSchema,
    PaymentNotificationSchema,
)
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.shop_lock import ShopLock
from src.app.use_cases.subscriptions import (
    CancelSubscription,
    CheckPaymentStatus,
    CreateSubscription,
    GetSubscription,
    GetSubscriptionById,
    GetSubscriptionStats,
    HandlePaymentNotification,
    LifecycleSettings,
    RetryPayment,
)
from src.app.use_cases.subscriptions.dtos import (
    CreateSubscriptionCommandDTO,
    PaymentStatusResponseDTO,
    SubscriptionActionResponseDTO,
    SubscriptionDTO,
    SubscriptionStatsDTO,
)
from src.adapter.repositories.shop_repository import SqlAlchemyShopRepository
from src.adapter.repositories.subscription_repository import SqlAlchemySubscriptionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_session, get_payment_gateway, get_shop_lock, get_lifecycle_settings
from src.api.error import raise_for_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])

_ERROR_EXAMPLE = {
    "application/json": {
        "example": {
            "error": {
                "code": "SUBSCRIPTION_CONFLICT",
                "message": "Shop 7 already has a pending subscription"
            }
        }
    }
}


def _check_payment_status(session, gateway, shop_lock, settings) -> CheckPaymentStatus:
    return CheckPaymentStatus(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemySubscriptionRepository(session),
        SqlAlchemyShopRepository(session),
        gateway,
        shop_lock,
        settings=settings,
    )


@router.post(
    "",
    response_model=SubscriptionActionResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Shop not found"},
        409: {"description": "Shop already has a pending or active subscription", "content": _ERROR_EXAMPLE},
    }
)
async def create_subscription(
    request: CreateSubscriptionRequestSchema,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    shop_lock: ShopLock = Depends(get_shop_lock),
    settings: LifecycleSettings = Depends(get_lifecycle_settings),
):
    """
    Subscribe a shop to a plan.

    Creates a pending subscription priced from the plan catalog and returns
    the hosted checkout URL (`init_point`). When the payment gateway is
    unavailable the subscription is still created, `init_point` is null and
    the payment link can be requested later through the retry endpoint.

    **Returns:**
    - 201: Subscription created
    - 404: Shop not found
    - 409: Shop already has a pending or active subscription
    """
    use_case = CreateSubscription(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemySubscriptionRepository(session),
        SqlAlchemyShopRepository(session),
        gateway,
        shop_lock,
        settings=settings,
    )
    command = CreateSubscriptionCommandDTO(
        shop_id=request.shop_id,
        plan=request.plan,
        auto_renew=request.auto_renew,
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.get(
    "/stats",
    response_model=SubscriptionStatsDTO,
    status_code=status.HTTP_200_OK,
)
async def get_subscription_stats(
    session: AsyncSession = Depends(get_session),
    settings: LifecycleSettings = Depends(get_lifecycle_settings),
):
    """Subscription counts per status and monthly recurring revenue."""
    use_case = GetSubscriptionStats(SqlAlchemySubscriptionRepository(session), settings)
    result = await use_case.execute()

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post("/webhooks/payment", status_code=status.HTTP_200_OK)
async def payment_webhook(
    notification: PaymentNotificationSchema,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    shop_lock: ShopLock = Depends(get_shop_lock),
    settings: LifecycleSettings = Depends(get_lifecycle_settings),
):
    """
    Payment gateway notification.

    Always acknowledged with 200 so the gateway stops redelivering; the
    referenced subscription is reconciled by re-querying the gateway.
    """
    session_ref = notification.session_ref()
    if not session_ref:
        logger.info(f"Payment notification without reference ignored (type={notification.type})")
        return {"received": True}

    use_case = HandlePaymentNotification(
        SqlAlchemySubscriptionRepository(session),
        _check_payment_status(session, gateway, shop_lock, settings),
    )
    result = await use_case.execute(session_ref)
    if result.is_err():
        logger.warning(
            f"Payment notification for {session_ref} not processed: {result.error.code}"
        )

    return {"received": True}


@router.get(
    "/by-id/{subscription_id}",
    response_model=SubscriptionDTO,
    status_code=status.HTTP_200_OK,
)
async def get_subscription_by_id(
    subscription_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Get a subscription by its own ID."""
    use_case = GetSubscriptionById(SqlAlchemySubscriptionRepository(session))
    result = await use_case.execute(subscription_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.get(
    "/{shop_id}",
    response_model=SubscriptionDTO,
    status_code=status.HTTP_200_OK,
    responses={404: {"description": "Shop has no subscription"}},
)
async def get_subscription(
    shop_id: int,
    session: AsyncSession = Depends(get_session),
):
    """
    Get the current subscription of a shop.

    **Returns:**
    - 200: Most recent subscription of the shop
    - 404: The shop never subscribed
    """
    use_case = GetSubscription(SqlAlchemySubscriptionRepository(session))
    result = await use_case.execute(shop_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/{subscription_id}/retry",
    response_model=SubscriptionActionResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {"description": "Subscription not found"},
        409: {"description": "Not retryable or no attempts remaining"},
    }
)
@router.post(
    "/{subscription_id}/retry-payment",
    response_model=SubscriptionActionResponseDTO,
    status_code=status.HTTP_200_OK,
    include_in_schema=False,
)
async def retry_payment(
    subscription_id: int,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    shop_lock: ShopLock = Depends(get_shop_lock),
    settings: LifecycleSettings = Depends(get_lifecycle_settings),
):
    """
    Retry the payment of a declined subscription.

    Consumes one attempt and returns a new checkout URL. A subscription that
    is already paid is returned as is, without a checkout URL.

    **Returns:**
    - 200: New payment link (or already resolved)
    - 404: Subscription not found
    - 409: INVALID_STATE or RETRY_EXHAUSTED
    """
    use_case = RetryPayment(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemySubscriptionRepository(session),
        SqlAlchemyShopRepository(session),
        gateway,
        shop_lock,
        settings=settings,
    )
    result = await use_case.execute(subscription_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.get(
    "/{subscription_id}/payment-status",
    response_model=PaymentStatusResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={404: {"description": "Subscription not found"}},
)
async def check_payment_status(
    subscription_id: int,
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    shop_lock: ShopLock = Depends(get_shop_lock),
    settings: LifecycleSettings = Depends(get_lifecycle_settings),
):
    """
    Check the payment of a subscription.

    Queries the gateway for pending subscriptions and applies the outcome.
    Safe to poll: while the outcome is unknown nothing changes.
    """
    use_case = _check_payment_status(session, gateway, shop_lock, settings)
    result = await use_case.execute(subscription_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.delete(
    "/{shop_id}",
    response_model=SubscriptionActionResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {"description": "Shop not found"},
        409: {"description": "Shop has no active subscription"},
    }
)
async def cancel_subscription(
    shop_id: int,
    session: AsyncSession = Depends(get_session),
    shop_lock: ShopLock = Depends(get_shop_lock),
):
    """
    Cancel the active subscription of a shop.

    Auto renewal stops; the shop stays visible until the end of the paid
    period and then expires.
    """
    use_case = CancelSubscription(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemySubscriptionRepository(session),
        SqlAlchemyShopRepository(session),
        shop_lock,
    )
    result = await use_case.execute(shop_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value
