"""
HTTP mapping of typed unlock failures. Body: {"detail": {"error": <code>, "message": ...}}.
"""
from fastapi import HTTPException

from app.schemas.unlock import UnlockErrorOut, UnlockOut
from app.services.errors import StoreUnavailable, UnknownVertical
from app.services.unlock.failure_types import HTTP_STATUS_BY_FAILURE, UnlockFailure, is_retryable
from app.services.unlock.models import UnlockResult


def failure_exception(
    failure: UnlockFailure,
    message: str,
    *,
    required: int | None = None,
    available: int | None = None,
) -> HTTPException:
    detail = UnlockErrorOut(error=failure.value, message=message, required=required, available=available)
    headers = {"Retry-After": "1"} if is_retryable(failure) else None
    return HTTPException(
        status_code=HTTP_STATUS_BY_FAILURE[failure],
        detail=detail.model_dump(exclude_none=True),
        headers=headers,
    )


def unknown_vertical_exception(e: UnknownVertical) -> HTTPException:
    return failure_exception(UnlockFailure.UNKNOWN_VERTICAL, str(e))


def store_unavailable_exception(e: StoreUnavailable) -> HTTPException:
    return failure_exception(UnlockFailure.STORE_UNAVAILABLE, "Storage temporarily unavailable, retry later")


def unlock_response(result: UnlockResult) -> UnlockOut:
    """UnlockOut for a successful batch; raises the mapped HTTPException otherwise."""
    if result.ok:
        return UnlockOut(
            newly_granted=result.newly_granted,
            already_granted=result.already_granted,
            charged=result.charged,
            remaining_balance=result.remaining_balance or 0,
        )
    raise failure_exception(
        result.failure or UnlockFailure.STORE_UNAVAILABLE,
        result.message or "Unlock failed",
        required=result.required,
        available=result.remaining_balance,
    )
