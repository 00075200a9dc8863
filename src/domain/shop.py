"""Shop Domain Entity

A merchant shop in the marketplace directory. Public visibility (map,
search, listings) is decided solely by the shop status.
"""

from datetime import datetime
from enum import Enum
from sqlmodel import Field, Column, Index
from sqlalchemy import String
from src.domain.base import BaseModel, IdType


class ShopStatus(str, Enum):
    """Shop status types"""
    ACTIVE = "active"
    PENDING_PAYMENT = "pending_payment"
    EXPIRED = "expired"
    SUSPENDED = "suspended"  # Administrative override


class ShopType(str, Enum):
    """Kind of merchant"""
    RETAILER = "retailer"
    WHOLESALER = "wholesaler"


class Shop(BaseModel, table=True):
    """
    Shop - Merchant shop listed in the directory

    Domain Rules:
    - Created with status pending_payment
    - Never deleted, only status-flipped
    - Status follows the shop's current subscription, except while suspended
    - Visible to clients only when status is active
    """

    __tablename__ = "shops"
    __table_args__ = (
        Index('ix_shops_owner_id', 'owner_id'),
        Index('ix_shops_status', 'status'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique shop identifier (auto-increment)"
    )

    owner_id: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Identifier of the merchant who owns the shop"
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Shop display name"
    )

    shop_type: ShopType = Field(
        default=ShopType.RETAILER,
        description="Kind of merchant (retailer, wholesaler)"
    )

    status: ShopStatus = Field(
        default=ShopStatus.PENDING_PAYMENT,
        description="Shop status (active, pending_payment, expired, suspended)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Shop registration timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last status change timestamp"
    )

    @property
    def is_visible(self) -> bool:
        return self.status == ShopStatus.ACTIVE

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "owner_id": "user_42",
                "name": "Pet Corner",
                "shop_type": "retailer",
                "status": "active",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
