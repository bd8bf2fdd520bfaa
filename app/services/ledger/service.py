"""
LedgerService: append-only credit ledger.

Balance is never stored: it is the SUM of deltas over the account's entries.
Entries are never updated or deleted.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.credit_account import CreditAccount
from app.models.ledger_entry import LedgerEntry
from app.services.errors import StoreUnavailable
from app.utils.metrics import ledger_appends_total

logger = logging.getLogger(__name__)

# Dialects with INSERT .. ON CONFLICT DO NOTHING
_UPSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@contextmanager
def store_errors(store: str) -> Iterator[None]:
    """Translate storage faults into StoreUnavailable. Uniqueness conflicts pass through."""
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"{store} unavailable: {type(e).__name__}", cause=e) from e


class LedgerService:
    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        account_id: str,
        delta: int,
        reason: str,
        *,
        reference_id: str | None = None,
        commit: bool = True,
    ) -> LedgerEntry:
        """
        Append one entry. commit=False only flushes: the caller owns the transaction
        (the unlock processor charges and grants in one commit).
        With commit=True a failed append is rolled back, never partially visible.
        """
        if int(delta) == 0:
            raise ValueError("delta must be non-zero")
        entry = LedgerEntry(
            account_id=account_id,
            delta=int(delta),
            reason=reason,
            reference_id=reference_id,
        )
        try:
            with store_errors("ledger"):
                self.db.add(entry)
                self.db.flush()
                if commit:
                    self.db.commit()
        except StoreUnavailable:
            if commit:
                self.db.rollback()
            raise
        ledger_appends_total.labels(kind="charge" if entry.delta < 0 else "credit").inc()
        logger.info(
            "ledger_append",
            extra={
                "account_id": account_id,
                "delta": entry.delta,
                "reason": reason,
                "unlock_id": reference_id,
            },
        )
        return entry

    def lock_account(self, account_id: str) -> None:
        """
        Take the account's row lock inside the caller's transaction; held until commit or rollback.
        Every charge goes through here, so the balance read after it cannot be stale,
        whatever happened to the outer account lock.
        On SQLite FOR UPDATE is not rendered; the upsert's write lock serializes instead.
        """
        upsert = _UPSERTS.get(self.db.get_bind().dialect.name)
        with store_errors("ledger"):
            if upsert is not None:
                self.db.execute(
                    upsert(CreditAccount)
                    .values(account_id=account_id)
                    .on_conflict_do_nothing(index_elements=["account_id"])
                )
            elif self.db.get(CreditAccount, account_id) is None:
                self.db.add(CreditAccount(account_id=account_id))
                self.db.flush()
            self.db.execute(
                select(CreditAccount.account_id)
                .where(CreditAccount.account_id == account_id)
                .with_for_update()
            ).scalar_one()

    def balance(self, account_id: str) -> int:
        with store_errors("ledger"):
            result = self.db.execute(
                select(func.coalesce(func.sum(LedgerEntry.delta), 0)).where(
                    LedgerEntry.account_id == account_id
                )
            )
            return int(result.scalar() or 0)

    def history(self, account_id: str, limit: int = 30) -> list[LedgerEntry]:
        """Most recent entries first."""
        with store_errors("ledger"):
            return list(
                self.db.execute(
                    select(LedgerEntry)
                    .where(LedgerEntry.account_id == account_id)
                    .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
                    .limit(limit)
                ).scalars()
            )
