"""Data Transfer Objects for Shop Use Cases"""

from datetime import datetime
from typing import List
from pydantic import BaseModel, Field
from src.domain.shop import Shop, ShopType


class RegisterShopCommandDTO(BaseModel):
    """
    Command DTO for registering a shop

    Used as input to RegisterShop use case.
    """

    owner_id: str = Field(..., min_length=1, description="Merchant identifier")
    name: str = Field(..., min_length=1, max_length=255, description="Shop display name")
    shop_type: ShopType = Field(default=ShopType.RETAILER, description="retailer or wholesaler")

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user_42",
                "name": "Pet Corner",
                "shop_type": "retailer"
            }
        }


class ShopDTO(BaseModel):
    """Response DTO describing a shop"""

    id: int = Field(..., description="Shop ID")
    owner_id: str = Field(..., description="Merchant identifier")
    name: str = Field(..., description="Shop display name")
    shop_type: str = Field(..., description="retailer or wholesaler")
    status: str = Field(..., description="active, pending_payment, expired or suspended")
    visible: bool = Field(..., description="Shown in public listings and maps")
    created_at: datetime = Field(..., description="Registration timestamp")
    updated_at: datetime = Field(..., description="Last status change")


class ShopListResponseDTO(BaseModel):
    """Response DTO for shop listings"""

    shops: List[ShopDTO] = Field(default_factory=list)
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Page offset")


def to_shop_dto(shop: Shop) -> ShopDTO:
    return ShopDTO(
        id=shop.id,
        owner_id=shop.owner_id,
        name=shop.name,
        shop_type=shop.shop_type.value,
        status=shop.status.value,
        visible=shop.is_visible,
        created_at=shop.created_at,
        updated_at=shop.updated_at,
    )
