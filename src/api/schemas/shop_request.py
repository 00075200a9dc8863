"""Request schemas for Shop API"""

from pydantic import BaseModel, Field
from src.domain.shop import ShopType


class RegisterShopRequestSchema(BaseModel):
    """Request schema for POST /shops"""

    owner_id: str = Field(
        ...,
        min_length=1,
        description="Merchant identifier (required, non-empty)"
    )

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Shop display name"
    )

    shop_type: ShopType = Field(
        default=ShopType.RETAILER,
        description="retailer or wholesaler"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user_42",
                "name": "Pet Corner",
                "shop_type": "retailer"
            }
        }
