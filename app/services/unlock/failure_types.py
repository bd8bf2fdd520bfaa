"""
Typed unlock failures and their retry policy.
"""
from enum import Enum


class UnlockFailure(str, Enum):
    """Failure codes returned by the unlock operation."""

    UNKNOWN_VERTICAL = "UnknownVertical"  # bad input
    INSUFFICIENT_CREDITS = "InsufficientCredits"  # business rule
    STORE_UNAVAILABLE = "StoreUnavailable"  # transient infrastructure


# Only infrastructure failures may be retried without a change of state
RETRYABLE_FAILURES = frozenset({
    UnlockFailure.STORE_UNAVAILABLE,
})

HTTP_STATUS_BY_FAILURE = {
    UnlockFailure.UNKNOWN_VERTICAL: 404,
    UnlockFailure.INSUFFICIENT_CREDITS: 402,
    UnlockFailure.STORE_UNAVAILABLE: 503,
}


def is_retryable(failure: UnlockFailure) -> bool:
    return failure in RETRYABLE_FAILURES


def failure_from_status(http_status: int) -> UnlockFailure | None:
    """Map an HTTP status from the unlock endpoint back to a failure code."""
    for failure, status in HTTP_STATUS_BY_FAILURE.items():
        if status == http_status:
            return failure
    if 500 <= http_status < 600:
        return UnlockFailure.STORE_UNAVAILABLE
    return None
