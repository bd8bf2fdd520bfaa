"""
Admin API: out-of-band credit adjustments (grants, refunds) and ledger inspection.
Guarded by X-Admin-Key; disabled when admin_api_key is not configured.
"""
import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.errors import store_unavailable_exception
from app.core.config import settings
from app.db.session import get_db
from app.schemas.credits import BalanceOut, CreditAdjustment, CreditHistoryOut, LedgerEntryOut
from app.services.errors import StoreUnavailable
from app.services.ledger.service import LedgerService

logger = logging.getLogger(__name__)


def require_admin_key(x_admin_key: str | None = Header(None)) -> None:
    expected = settings.admin_api_key
    if not expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin API disabled")
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


@router.post("/credits/{account_id}", response_model=BalanceOut)
def adjust_credits(account_id: str, payload: CreditAdjustment, db: Session = Depends(get_db)) -> BalanceOut:
    if payload.delta == 0:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="delta must be non-zero")
    ledger = LedgerService(db)
    try:
        ledger.append(account_id, payload.delta, payload.reason)
        balance = ledger.balance(account_id)
    except StoreUnavailable as e:
        raise store_unavailable_exception(e)
    logger.info(
        "admin_credit_adjustment",
        extra={"account_id": account_id, "delta": payload.delta, "reason": payload.reason, "balance": balance},
    )
    return BalanceOut(balance=balance)


@router.get("/credits/{account_id}", response_model=CreditHistoryOut)
def get_account_credits(
    account_id: str,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> CreditHistoryOut:
    ledger = LedgerService(db)
    try:
        balance = ledger.balance(account_id)
        entries = ledger.history(account_id, limit=limit)
    except StoreUnavailable as e:
        raise store_unavailable_exception(e)
    return CreditHistoryOut(
        balance=balance,
        entries=[
            LedgerEntryOut(
                id=entry.id,
                delta=entry.delta,
                reason=entry.reason,
                reference_id=entry.reference_id,
                created_at=entry.created_at,
            )
            for entry in entries
        ],
    )
