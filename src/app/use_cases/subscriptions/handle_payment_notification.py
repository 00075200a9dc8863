"""HandlePaymentNotification Use Case

Entry point for gateway webhooks. The notification only says "something
happened to this session"; the outcome is always re-queried through
CheckPaymentStatus.
"""

import logging
from libs.result import Result, Return
from src.app.repositories.subscription_repository import SubscriptionRepository
from .check_payment_status import CheckPaymentStatus
from .dtos import PaymentNotificationResultDTO

logger = logging.getLogger(__name__)


class HandlePaymentNotification:
    """
    Use Case: Reconcile the subscription referenced by a gateway notification

    Unknown or superseded session references are acknowledged and ignored.
    """

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        check_payment_status: CheckPaymentStatus,
    ):
        self.subscription_repo = subscription_repo
        self.check_payment_status = check_payment_status

    async def execute(self, session_ref: str) -> Result[PaymentNotificationResultDTO]:
        subscription = await self.subscription_repo.get_by_session_ref(session_ref)
        if not subscription:
            logger.info(f"Notification for unknown or superseded session {session_ref} ignored")
            return Return.ok(
                PaymentNotificationResultDTO(session_ref=session_ref, matched=False)
            )

        result = await self.check_payment_status.execute(subscription.id)
        if result.is_err():
            return result

        return Return.ok(
            PaymentNotificationResultDTO(
                session_ref=session_ref,
                matched=True,
                status=result.value.status,
            )
        )
