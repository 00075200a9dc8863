"""Shop API Routes

Shop directory and administrative suspension.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.shop_request import RegisterShopRequestSchema
from src.app.services.shop_lock import ShopLock
from src.app.use_cases.shops import (
    GetShop,
    ListShops,
    RegisterShop,
    ReinstateShop,
    SuspendShop,
)
from src.app.use_cases.shops.dtos import RegisterShopCommandDTO, ShopDTO, ShopListResponseDTO
from src.adapter.repositories.shop_repository import SqlAlchemyShopRepository
from src.adapter.repositories.subscription_repository import SqlAlchemySubscriptionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_session, get_shop_lock
from src.domain.shop import ShopStatus, ShopType
from src.api.error import raise_for_error

router = APIRouter(prefix="/shops", tags=["Shops"])


@router.post("", response_model=ShopDTO, status_code=status.HTTP_201_CREATED)
async def register_shop(
    request: RegisterShopRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Register a shop. It stays hidden until its first subscription is paid."""
    use_case = RegisterShop(SqlAlchemyUnitOfWork(session), SqlAlchemyShopRepository(session))
    command = RegisterShopCommandDTO(
        owner_id=request.owner_id,
        name=request.name,
        shop_type=request.shop_type,
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.get("", response_model=ShopListResponseDTO, status_code=status.HTTP_200_OK)
async def list_shops(
    shop_status: Optional[ShopStatus] = Query(default=ShopStatus.ACTIVE, alias="status"),
    shop_type: Optional[ShopType] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    """
    List shops.

    Defaults to visible (active) shops, as shown in public listings and maps.
    """
    use_case = ListShops(SqlAlchemyShopRepository(session))
    result = await use_case.execute(
        status=shop_status, shop_type=shop_type, limit=limit, offset=offset
    )
    return result.value


@router.get("/{shop_id}", response_model=ShopDTO, status_code=status.HTTP_200_OK)
async def get_shop(
    shop_id: int,
    session: AsyncSession = Depends(get_session),
):
    use_case = GetShop(SqlAlchemyShopRepository(session))
    result = await use_case.execute(shop_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post("/{shop_id}/suspend", response_model=ShopDTO, status_code=status.HTTP_200_OK)
async def suspend_shop(
    shop_id: int,
    session: AsyncSession = Depends(get_session),
    shop_lock: ShopLock = Depends(get_shop_lock),
):
    """Hide a shop regardless of its subscription."""
    use_case = SuspendShop(
        SqlAlchemyUnitOfWork(session), SqlAlchemyShopRepository(session), shop_lock
    )
    result = await use_case.execute(shop_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post("/{shop_id}/reinstate", response_model=ShopDTO, status_code=status.HTTP_200_OK)
async def reinstate_shop(
    shop_id: int,
    session: AsyncSession = Depends(get_session),
    shop_lock: ShopLock = Depends(get_shop_lock),
):
    """Lift a suspension; the status follows the current subscription again."""
    use_case = ReinstateShop(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyShopRepository(session),
        SqlAlchemySubscriptionRepository(session),
        shop_lock,
    )
    result = await use_case.execute(shop_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value
