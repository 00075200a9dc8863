"""Subscription Sweeper Background Worker

Periodically starts renewals of subscriptions whose period ended and
expires subscriptions whose time ran out. Can be run as a standalone
script or integrated with a scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.shop_repository import SqlAlchemyShopRepository
from src.adapter.repositories.subscription_repository import SqlAlchemySubscriptionRepository
from src.adapter.services.payment_gateway import create_payment_gateway
from src.adapter.services.shop_lock import InProcessShopLock
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.shop_lock import ShopLock
from src.app.use_cases.subscriptions import (
    ExpirySweep,
    ExpirySweepResultDTO,
    LifecycleSettings,
    RenewalRunResultDTO,
    RenewDueSubscriptions,
    RenewSubscription,
    SweepCycleResultDTO,
)

logger = logging.getLogger(__name__)


class SubscriptionSweeperWorker:
    """
    Background worker for the subscription lifecycle

    Each cycle runs the renewal pass first, so auto-renewing subscriptions
    get their renewal started before the expiry pass looks at them.

    Usage:
        # Run once
        worker = SubscriptionSweeperWorker()
        result = await worker.run_once()

        # Run continuously
        worker = SubscriptionSweeperWorker()
        await worker.run_forever(interval_seconds=3600)  # Hourly
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        gateway: Optional[PaymentGateway] = None,
        shop_lock: Optional[ShopLock] = None,
        settings: Optional[LifecycleSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            gateway: Payment gateway (defaults to the configured one)
            shop_lock: Per-shop lock (defaults to a lock local to this worker)
            settings: Lifecycle settings (defaults to ApplicationConfig)
            clock: Source of "now" (defaults to datetime.utcnow)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.settings = settings or LifecycleSettings.from_config(ApplicationConfig)
        self.gateway = gateway or create_payment_gateway(
            ApplicationConfig.PAYMENT_GATEWAY,
            access_token=ApplicationConfig.MERCADOPAGO_ACCESS_TOKEN,
            api_url=ApplicationConfig.MERCADOPAGO_API_URL,
            currency=self.settings.currency,
            timeout=self.settings.gateway_timeout_seconds,
            max_retries=int(ApplicationConfig.PAYMENT_GATEWAY_MAX_RETRIES),
            notification_url=ApplicationConfig.PAYMENT_NOTIFICATION_URL,
            back_url=ApplicationConfig.PAYMENT_BACK_URL,
        )
        self.shop_lock = shop_lock or InProcessShopLock()
        self.clock = clock or datetime.utcnow

        # Create engine and session factory
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("SubscriptionSweeperWorker initialized")

    async def run_once(self) -> SweepCycleResultDTO:
        """
        Run one renewal pass followed by one expiry pass

        Returns:
            SweepCycleResultDTO with both pass results
        """
        if not ApplicationConfig.SUBSCRIPTION_SWEEP_ENABLED:
            logger.info("Subscription sweep is disabled, skipping")
            now = self.clock()
            return SweepCycleResultDTO(
                renewals=RenewalRunResultDTO(
                    due_count=0, renewed_count=0, sessions_issued=0, failed_count=0
                ),
                expiry=ExpirySweepResultDTO(
                    candidates_checked=0, expired_count=0, sweep_time=now, execution_time_ms=0
                ),
            )

        renewals = await self._run_renewals()
        expiry = await self._run_expiry()

        return SweepCycleResultDTO(renewals=renewals, expiry=expiry)

    async def _run_renewals(self) -> RenewalRunResultDTO:
        async with self.async_session_factory() as session:
            subscription_repo = SqlAlchemySubscriptionRepository(session)
            renew_subscription = RenewSubscription(
                uow=SqlAlchemyUnitOfWork(session),
                subscription_repo=subscription_repo,
                shop_repo=SqlAlchemyShopRepository(session),
                gateway=self.gateway,
                shop_lock=self.shop_lock,
                settings=self.settings,
                clock=self.clock,
            )
            use_case = RenewDueSubscriptions(
                subscription_repo=subscription_repo,
                renew_subscription=renew_subscription,
                settings=self.settings,
                clock=self.clock,
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Renewal pass failed: {result.error.message}")
                raise RuntimeError(f"Renewal pass failed: {result.error.message}")

            response = result.value
            if response.failed_count > 0:
                logger.warning(f"{response.failed_count} renewal(s) failed this cycle")
            return response

    async def _run_expiry(self) -> ExpirySweepResultDTO:
        async with self.async_session_factory() as session:
            use_case = ExpirySweep(
                uow=SqlAlchemyUnitOfWork(session),
                subscription_repo=SqlAlchemySubscriptionRepository(session),
                shop_repo=SqlAlchemyShopRepository(session),
                shop_lock=self.shop_lock,
                settings=self.settings,
                clock=self.clock,
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Expiry sweep failed: {result.error.message}")
                raise RuntimeError(f"Expiry sweep failed: {result.error.message}")

            return result.value

    async def run_forever(self, interval_seconds: int = 3600):
        """
        Run the sweeper continuously at specified interval

        Args:
            interval_seconds: Seconds between cycles (default: 1 hour)
        """
        logger.info(
            f"Starting continuous subscription sweep with {interval_seconds}s interval"
        )

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Sweep cycle complete. "
                    f"Renewed {result.renewals.renewed_count}/{result.renewals.due_count}, "
                    f"expired {result.expiry.expired_count} "
                    f"of {result.expiry.candidates_checked} candidates"
                )
            except Exception as e:
                logger.error(f"Sweep cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("SubscriptionSweeperWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.subscription_sweeper --once

        # Run continuously (default: SUBSCRIPTION_SWEEP_INTERVAL_SECONDS)
        python -m src.worker.subscription_sweeper

        # Run continuously with custom interval (in seconds)
        python -m src.worker.subscription_sweeper --interval 600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Subscription Sweeper Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=int(ApplicationConfig.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS),
        help="Interval between runs in seconds (default: SUBSCRIPTION_SWEEP_INTERVAL_SECONDS)"
    )
    args = parser.parse_args()

    worker = SubscriptionSweeperWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print("Subscription sweep complete:")
            print(f"  Renewals due: {result.renewals.due_count}")
            print(f"  Renewals started: {result.renewals.renewed_count}")
            print(f"  Subscriptions expired: {result.expiry.expired_count}")
            print(f"  Execution time: {result.expiry.execution_time_ms}ms")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
