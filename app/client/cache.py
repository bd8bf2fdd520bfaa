"""
ClientEntitlementCache: per-session view of one vertical: fetched rows, entitled ids
(server truth), local selection and a pending-unlock flag.

Selection is purely local. entitled_ids only changes from a server response:
a refresh (wholesale replace) or a confirmed unlock (merge of granted ids).
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Literal

from app.client.api import EntitlementApiClient, EntitlementApiError, OutcomeUnknown, SessionExpired
from app.client.state import SelectionSummary, SessionSnapshot
from app.services.unlock.models import UnlockResult

logger = logging.getLogger(__name__)

UnlockStatus = Literal["noop", "granted", "failed", "unknown"]


class UnlockInProgress(Exception):
    """A second unlock was requested while one is still in flight for this session."""


@dataclass(frozen=True)
class UnlockAttempt:
    status: UnlockStatus
    result: UnlockResult | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in ("noop", "granted")


def _status_of(result: UnlockResult) -> UnlockStatus:
    if not result.ok:
        return "failed"
    return "granted" if result.newly_granted else "noop"


class ClientEntitlementCache:
    def __init__(
        self,
        api: EntitlementApiClient,
        vertical_key: str,
        *,
        id_field: str = "id",
        unit_cost: int = 1,
        record_limit: int | None = None,
    ) -> None:
        self._api = api
        self._unit_cost = unit_cost
        self._record_limit = record_limit
        self._state = SessionSnapshot(vertical_key=vertical_key, id_field=id_field)
        # Bumped on vertical switch / invalidation: responses issued earlier are dropped
        self._generation = 0
        # Bumped on every confirmed unlock: a refresh issued earlier must not drop those grants
        self._unlock_epoch = 0
        # Session-wide: survives vertical switches and invalidation, unlike the snapshot flag
        self._inflight = False

    @property
    def state(self) -> SessionSnapshot:
        return self._state

    # ------------------------------------------------------------------
    # Server reconciliation
    # ------------------------------------------------------------------

    async def refresh(self) -> SessionSnapshot:
        """Fetch records, entitled ids and balance concurrently; replace them wholesale."""
        generation = self._generation
        epoch = self._unlock_epoch
        key = self._state.vertical_key
        try:
            records, entitled, balance = await asyncio.gather(
                self._api.list_records(key, limit=self._record_limit),
                self._api.list_entitlements(key),
                self._api.get_balance(),
            )
        except SessionExpired:
            self.invalidate()
            raise

        if generation != self._generation:
            logger.info("refresh_discarded_stale", extra={"vertical_key": key})
            return self._state

        entitled_ids = frozenset(entitled)
        if epoch != self._unlock_epoch:
            # Grants are never revoked, so anything confirmed meanwhile stays
            entitled_ids = entitled_ids | self._state.entitled_ids

        current = self._state
        record_tuple = tuple(records)
        present = {str(r.get(current.id_field)) for r in record_tuple}
        self._state = current.evolve(
            records=record_tuple,
            entitled_ids=entitled_ids,
            selected_ids=frozenset(i for i in current.selected_ids if i in present),
            balance=balance,
            loaded=True,
        )
        return self._state

    async def refresh_balance(self) -> int | None:
        generation = self._generation
        try:
            balance = await self._api.get_balance()
        except SessionExpired:
            self.invalidate()
            raise
        if generation == self._generation:
            self._state = self._state.evolve(balance=balance)
        return balance

    async def switch_vertical(self, vertical_key: str, *, id_field: str = "id") -> SessionSnapshot:
        self._generation += 1
        self._state = SessionSnapshot(
            vertical_key=vertical_key,
            id_field=id_field,
            balance=self._state.balance,
            pending_unlock=self._inflight,
        )
        return await self.refresh()

    def invalidate(self) -> None:
        """Identity signal (logout / expired session): drop everything."""
        self._generation += 1
        self._state = SessionSnapshot(
            vertical_key=self._state.vertical_key,
            id_field=self._state.id_field,
            pending_unlock=self._inflight,
        )

    # ------------------------------------------------------------------
    # Local selection (never touches the server)
    # ------------------------------------------------------------------

    def toggle_select(self, record_id: str) -> SessionSnapshot:
        rid = str(record_id)
        selected = self._state.selected_ids
        selected = selected - {rid} if rid in selected else selected | {rid}
        self._state = self._state.evolve(selected_ids=selected)
        return self._state

    def select_all(self) -> SessionSnapshot:
        self._state = self._state.evolve(selected_ids=frozenset(self._state.record_ids))
        return self._state

    def clear(self) -> SessionSnapshot:
        self._state = self._state.evolve(selected_ids=frozenset())
        return self._state

    def summary(self) -> SelectionSummary:
        state = self._state
        new_ids = state.new_selected_ids
        return SelectionSummary(
            selected=len(state.selected_ids),
            already_unlocked=len(state.selected_ids) - len(new_ids),
            to_unlock=len(new_ids),
            credits_required=len(new_ids) * self._unit_cost,
            balance=state.balance,
        )

    # ------------------------------------------------------------------
    # Unlock
    # ------------------------------------------------------------------

    async def request_unlock(self) -> UnlockAttempt:
        """
        Unlock the current selection. The full selection is sent: the server decides what is new.
        Empty advisory diff -> local no-op, no network call.
        """
        state = self._state
        if self._inflight:
            raise UnlockInProgress("unlock already in progress")
        if not state.new_selected_ids:
            return UnlockAttempt(status="noop", message="All selected already unlocked" if state.selected_ids else None)
        return await self._submit(state.selected_ids, clear_selection=True)

    async def request_unlock_one(self, record_id: str) -> UnlockAttempt:
        """Unlock a single record (detail drawer) without touching the selection."""
        rid = str(record_id)
        if self._inflight:
            raise UnlockInProgress("unlock already in progress")
        if rid in self._state.entitled_ids:
            return UnlockAttempt(status="noop")
        return await self._submit(frozenset({rid}), clear_selection=False)

    async def _submit(self, ids: Iterable[str], *, clear_selection: bool) -> UnlockAttempt:
        self._inflight = True
        try:
            return await self._submit_once(ids, clear_selection=clear_selection)
        finally:
            self._inflight = False
            if self._state.pending_unlock:
                self._state = self._state.evolve(pending_unlock=False)

    async def _submit_once(self, ids: Iterable[str], *, clear_selection: bool) -> UnlockAttempt:
        generation = self._generation
        key = self._state.vertical_key
        self._state = self._state.evolve(pending_unlock=True)
        try:
            result = await self._api.unlock(key, ids)
        except OutcomeUnknown as e:
            logger.warning("unlock_outcome_unknown_requery", extra={"vertical_key": key, "error": str(e)})
            # Re-query instead of resubmitting; a later retry is safe because owned ids are a no-op
            try:
                await self.refresh()
            except EntitlementApiError as refresh_error:
                logger.warning("unlock_requery_failed", extra={"vertical_key": key, "error": str(refresh_error)})
            return UnlockAttempt(status="unknown", message="Unlock outcome unknown; state re-synced from server")
        except SessionExpired:
            self.invalidate()
            raise

        if generation != self._generation:
            # Vertical switched or session invalidated while in flight; nothing to merge into
            return UnlockAttempt(status=_status_of(result), result=result, message=result.message)

        if not result.ok:
            logger.info(
                "unlock_failed",
                extra={"vertical_key": key, "error": result.failure.value if result.failure else None},
            )
            return UnlockAttempt(status="failed", result=result, message=result.message)

        self._unlock_epoch += 1
        current = self._state
        self._state = current.evolve(
            entitled_ids=current.entitled_ids | frozenset(result.newly_granted) | frozenset(result.already_granted),
            selected_ids=frozenset() if clear_selection else current.selected_ids,
            pending_unlock=False,
            balance=result.remaining_balance if result.remaining_balance is not None else current.balance,
        )
        try:
            await self.refresh_balance()
        except EntitlementApiError as e:
            logger.warning("balance_refresh_failed", extra={"vertical_key": key, "error": str(e)})
        return UnlockAttempt(status=_status_of(result), result=result)
