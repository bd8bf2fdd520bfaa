"""
Vertical routes: catalog, records, entitlements and the unlock operation.
The account always comes from the session; clients never name it.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.errors import store_unavailable_exception, unknown_vertical_exception, unlock_response
from app.core.config import settings
from app.db.session import get_db
from app.schemas.unlock import EntitlementsOut, UnlockOut, UnlockRequest
from app.schemas.verticals import RecordsOut, VerticalOut
from app.services.auth.identity import get_current_account
from app.services.entitlements.service import EntitlementService
from app.services.errors import StoreUnavailable, UnknownVertical
from app.services.records.service import RecordService
from app.services.unlock.service import UnlockService
from app.verticals.models import VerticalDescriptor
from app.verticals.registry import VerticalRegistry, get_registry


router = APIRouter(prefix="/verticals", tags=["verticals"])


def _resolve(key: str, registry: VerticalRegistry) -> VerticalDescriptor:
    try:
        return registry.require(key)
    except UnknownVertical as e:
        raise unknown_vertical_exception(e)


@router.get("", response_model=list[VerticalOut])
def list_verticals(registry: VerticalRegistry = Depends(get_registry)) -> list[VerticalOut]:
    return [VerticalOut(**d.public_dict()) for d in registry.all()]


@router.get("/{key}", response_model=VerticalOut)
def get_vertical(key: str, registry: VerticalRegistry = Depends(get_registry)) -> VerticalOut:
    return VerticalOut(**_resolve(key, registry).public_dict())


@router.get("/{key}/records", response_model=RecordsOut)
def list_records(
    key: str,
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    registry: VerticalRegistry = Depends(get_registry),
    account_id: str = Depends(get_current_account),
) -> RecordsOut:
    descriptor = _resolve(key, registry)
    effective_limit = min(limit or settings.records_default_limit, settings.records_max_limit)
    try:
        records = RecordService(db).list_records(descriptor, limit=effective_limit)
    except StoreUnavailable as e:
        raise store_unavailable_exception(e)
    return RecordsOut(vertical_key=key, records=records)


@router.get("/{key}/entitlements", response_model=EntitlementsOut)
def list_entitlements(
    key: str,
    db: Session = Depends(get_db),
    registry: VerticalRegistry = Depends(get_registry),
    account_id: str = Depends(get_current_account),
) -> EntitlementsOut:
    _resolve(key, registry)
    try:
        granted = EntitlementService(db, registry).list_granted(account_id, key)
    except StoreUnavailable as e:
        raise store_unavailable_exception(e)
    return EntitlementsOut(vertical_key=key, record_ids=sorted(granted))


@router.post("/{key}/unlock", response_model=UnlockOut)
def unlock_records(
    key: str,
    body: UnlockRequest,
    db: Session = Depends(get_db),
    registry: VerticalRegistry = Depends(get_registry),
    account_id: str = Depends(get_current_account),
) -> UnlockOut:
    """
    Single unlock operation for every vertical. Send the full selection:
    the server decides which ids are new, charges only for those.
    """
    try:
        result = UnlockService(db, registry).unlock(account_id, key, body.record_ids)
    except StoreUnavailable as e:
        raise store_unavailable_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return unlock_response(result)
