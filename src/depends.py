from functools import lru_cache
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.payment_gateway import create_payment_gateway
from src.adapter.services.shop_lock import InProcessShopLock
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.shop_lock import ShopLock
from src.app.use_cases.subscriptions.settings import LifecycleSettings

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

# One lock registry per process; every request and worker task shares it
_shop_lock = InProcessShopLock()


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


@lru_cache()
def get_payment_gateway() -> PaymentGateway:
    return create_payment_gateway(
        ApplicationConfig.PAYMENT_GATEWAY,
        access_token=ApplicationConfig.MERCADOPAGO_ACCESS_TOKEN,
        api_url=ApplicationConfig.MERCADOPAGO_API_URL,
        currency=ApplicationConfig.SUBSCRIPTION_CURRENCY,
        timeout=float(ApplicationConfig.PAYMENT_GATEWAY_TIMEOUT_SECONDS),
        max_retries=int(ApplicationConfig.PAYMENT_GATEWAY_MAX_RETRIES),
        notification_url=ApplicationConfig.PAYMENT_NOTIFICATION_URL,
        back_url=ApplicationConfig.PAYMENT_BACK_URL,
    )


def get_shop_lock() -> ShopLock:
    return _shop_lock


@lru_cache()
def get_lifecycle_settings() -> LifecycleSettings:
    return LifecycleSettings.from_config(ApplicationConfig)
