from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class CreditAccount(Base):
    """One row per account that has ever charged. Locked FOR UPDATE by every unlock charge."""

    __tablename__ = "credit_accounts"

    account_id = Column(String, primary_key=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
