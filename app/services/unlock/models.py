"""
DTO unlock processor: UnlockResult (typed success or failure of one batch).
"""
from __future__ import annotations

from pydantic import BaseModel, Field

from app.services.unlock.failure_types import UnlockFailure


class UnlockResult(BaseModel):
    """Outcome of one unlock batch. ok=False carries a failure code and no side effects."""

    ok: bool
    vertical_key: str
    requested: list[str] = Field(default_factory=list)
    newly_granted: list[str] = Field(default_factory=list)
    already_granted: list[str] = Field(default_factory=list)
    charged: int = 0
    remaining_balance: int | None = None
    unlock_id: str | None = Field(None, description="Ledger reference of the charge; None when nothing was charged")
    failure: UnlockFailure | None = None
    required: int | None = Field(None, description="Credits the batch needed (InsufficientCredits)")
    message: str | None = None

    model_config = {"frozen": True}

    @property
    def outcome(self) -> str:
        """Metric/log label: granted, noop or the failure code."""
        if self.failure is not None:
            return self.failure.value
        return "granted" if self.newly_granted else "noop"
