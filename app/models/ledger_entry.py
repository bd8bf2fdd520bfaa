from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Integer, String

from app.db.base import Base


class LedgerEntry(Base):
    """Immutable credit ledger entry. Balance = SUM(delta) per account."""

    __tablename__ = "credit_ledger"
    __table_args__ = (Index("ix_credit_ledger_account_created", "account_id", "created_at"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    account_id = Column(String, nullable=False)
    delta = Column(Integer, nullable=False)  # negative = charge, positive = grant/refund
    reason = Column(String, nullable=False)
    reference_id = Column(String, nullable=True, index=True)  # unlock batch id for charges
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
