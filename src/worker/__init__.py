"""Background workers for the subscription service"""
from .subscription_sweeper import SubscriptionSweeperWorker

__all__ = ["SubscriptionSweeperWorker"]
