"""Shop directory use cases"""
from .register_shop import RegisterShop
from .list_shops import ListShops, GetShop
from .suspend_shop import SuspendShop, ReinstateShop
from .dtos import RegisterShopCommandDTO, ShopDTO, ShopListResponseDTO

__all__ = [
    "RegisterShop",
    "ListShops",
    "GetShop",
    "SuspendShop",
    "ReinstateShop",
    "RegisterShopCommandDTO",
    "ShopDTO",
    "ShopListResponseDTO",
]
