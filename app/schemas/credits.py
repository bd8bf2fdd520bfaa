from datetime import datetime

from pydantic import BaseModel


class BalanceOut(BaseModel):
    balance: int


class LedgerEntryOut(BaseModel):
    id: str
    delta: int
    reason: str
    reference_id: str | None
    created_at: datetime | None


class CreditHistoryOut(BaseModel):
    balance: int
    entries: list[LedgerEntryOut]


class CreditAdjustment(BaseModel):
    delta: int
    reason: str = "admin_adjustment"
