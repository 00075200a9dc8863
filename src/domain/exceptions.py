"""Subscription domain errors

Each error carries the code surfaced to API callers.
"""


class SubscriptionError(Exception):
    """Base class for subscription lifecycle errors"""

    code = "SUBSCRIPTION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConflictError(SubscriptionError):
    """Shop already has a pending or active subscription"""

    code = "SUBSCRIPTION_CONFLICT"


class NotFoundError(SubscriptionError):
    """No subscription or shop matches the request"""

    code = "NOT_FOUND"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        if code:
            self.code = code


class InvalidStateError(SubscriptionError):
    """Operation not valid for the current subscription status"""

    code = "INVALID_STATE"


class RetryExhaustedError(SubscriptionError):
    """Payment retry budget is depleted"""

    code = "RETRY_EXHAUSTED"


class GatewayUnavailableError(SubscriptionError):
    """Payment gateway timed out or answered with a non-2xx status"""

    code = "GATEWAY_UNAVAILABLE"


class StaleSubscriptionError(SubscriptionError):
    """Subscription changed since it was read (version mismatch)"""

    code = "CONCURRENT_MODIFICATION"
