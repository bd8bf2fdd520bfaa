"""
Legacy named unlock operations (POST /rpc/unlock_<vertical>_<records> with {"<param>": [...]}).
Each name resolves through the registry to the single unlock operation.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.errors import failure_exception, store_unavailable_exception, unlock_response
from app.db.session import get_db
from app.schemas.unlock import UnlockOut
from app.services.auth.identity import get_current_account
from app.services.errors import StoreUnavailable
from app.services.unlock.failure_types import UnlockFailure
from app.services.unlock.service import UnlockService
from app.verticals.registry import VerticalRegistry, get_registry


router = APIRouter(prefix="/rpc", tags=["rpc"])


@router.post("/{operation}", response_model=UnlockOut)
def call_unlock_operation(
    operation: str,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    registry: VerticalRegistry = Depends(get_registry),
    account_id: str = Depends(get_current_account),
) -> UnlockOut:
    descriptor = registry.by_operation(operation)
    if descriptor is None:
        raise failure_exception(UnlockFailure.UNKNOWN_VERTICAL, f"Unknown operation: {operation}")
    ids = payload.get(descriptor.unlock_operation_param)
    if not isinstance(ids, list) or not ids:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{descriptor.unlock_operation_param} must be a non-empty list",
        )
    try:
        result = UnlockService(db, registry).unlock(account_id, descriptor.key, ids)
    except StoreUnavailable as e:
        raise store_unavailable_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return unlock_response(result)
