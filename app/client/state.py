"""
Immutable per-session state. Every change produces a new snapshot with a bumped version,
so a snapshot handed to the UI never changes underneath it.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class SessionSnapshot:
    vertical_key: str
    records: tuple[dict[str, Any], ...] = ()
    entitled_ids: frozenset[str] = frozenset()
    selected_ids: frozenset[str] = frozenset()
    pending_unlock: bool = False
    balance: int | None = None
    loaded: bool = False
    id_field: str = "id"
    version: int = 0

    def evolve(self, **changes: Any) -> SessionSnapshot:
        return replace(self, version=self.version + 1, **changes)

    @property
    def record_ids(self) -> tuple[str, ...]:
        return tuple(str(r.get(self.id_field)) for r in self.records if r.get(self.id_field) is not None)

    @property
    def new_selected_ids(self) -> frozenset[str]:
        """Advisory: selected ids not known to be entitled yet."""
        return self.selected_ids - self.entitled_ids

    def is_unlocked(self, record_id: str) -> bool:
        return str(record_id) in self.entitled_ids


@dataclass(frozen=True)
class SelectionSummary:
    selected: int
    already_unlocked: int
    to_unlock: int
    credits_required: int
    balance: int | None = None

    @property
    def can_afford(self) -> bool:
        """Advisory only; the server re-checks inside the unlock transaction."""
        if self.balance is None:
            return True
        return self.balance >= self.credits_required

    def describe(self) -> str:
        """e.g. "3 selected · 1 already unlocked · 2 credits to unlock"."""
        if self.selected == 0:
            return ""
        parts = [f"{self.selected} selected"]
        if self.already_unlocked:
            parts.append(f"{self.already_unlocked} already unlocked")
        if self.to_unlock:
            noun = "credit" if self.credits_required == 1 else "credits"
            parts.append(f"{self.credits_required} {noun} to unlock")
            if not self.can_afford:
                parts.append("Insufficient credits")
        else:
            parts.append("All selected already unlocked")
        return " · ".join(parts)
