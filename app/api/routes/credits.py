from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.errors import store_unavailable_exception
from app.core.config import settings
from app.db.session import get_db
from app.schemas.credits import BalanceOut, CreditHistoryOut, LedgerEntryOut
from app.services.auth.identity import get_current_account
from app.services.errors import StoreUnavailable
from app.services.ledger.service import LedgerService


router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/balance", response_model=BalanceOut)
def get_balance(
    db: Session = Depends(get_db),
    account_id: str = Depends(get_current_account),
) -> BalanceOut:
    try:
        return BalanceOut(balance=LedgerService(db).balance(account_id))
    except StoreUnavailable as e:
        raise store_unavailable_exception(e)


@router.get("/history", response_model=CreditHistoryOut)
def get_history(
    limit: int | None = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    account_id: str = Depends(get_current_account),
) -> CreditHistoryOut:
    ledger = LedgerService(db)
    try:
        balance = ledger.balance(account_id)
        entries = ledger.history(account_id, limit=limit or settings.ledger_history_limit)
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
