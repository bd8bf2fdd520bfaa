"""
UnlockService: the single unlock operation for every vertical.

Responsibilities:
- dedupe the requested ids, resolve the vertical through the registry
- under the account lock: compute not-yet-granted ids, check balance,
  charge the ledger and insert grants in ONE transaction (one commit)
- typed result for expected outcomes; only StoreUnavailable is raised
"""
import logging
import time
from typing import Iterable
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.entitlements.service import EntitlementService
from app.services.errors import StoreUnavailable
from app.services.ledger.service import LedgerService, store_errors
from app.services.locks import AccountLocks, get_account_locks
from app.services.unlock.failure_types import UnlockFailure
from app.services.unlock.models import UnlockResult
from app.utils.metrics import (
    credits_charged_total,
    records_unlocked_total,
    unlock_conflicts_total,
    unlock_duration_seconds,
    unlock_requests_total,
)
from app.verticals.models import VerticalDescriptor
from app.verticals.registry import VerticalRegistry, get_registry

logger = logging.getLogger(__name__)

# Re-evaluations after a grant uniqueness conflict; the second pass sees the winner's grants
MAX_CONFLICT_RETRIES = 1


class GrantConflict(Exception):
    """Grant insert disagreed with the ids that were charged for."""


def normalize_ids(record_ids: Iterable[object] | str) -> set[str]:
    if isinstance(record_ids, str):
        record_ids = [record_ids]
    return {str(rid).strip() for rid in record_ids if rid is not None and str(rid).strip()}


def unlock_reason(vertical_key: str) -> str:
    return f"unlock:{vertical_key}"


class UnlockService:
    def __init__(
        self,
        db: Session,
        registry: VerticalRegistry | None = None,
        locks: AccountLocks | None = None,
        unit_cost: int | None = None,
    ):
        self.db = db
        self.registry = registry or get_registry()
        self.locks = locks or get_account_locks()
        self.unit_cost = unit_cost if unit_cost is not None else settings.unlock_unit_cost
        if self.unit_cost <= 0:
            raise ValueError("unit_cost must be greater than 0")
        self.ledger = LedgerService(db)
        self.entitlements = EntitlementService(db, self.registry)

    def unlock(self, account_id: str, vertical_key: str, requested_ids: Iterable[object]) -> UnlockResult:
        """
        All-or-nothing unlock of the requested batch.
        Re-requesting already owned records is a no-op success, which makes retries safe.
        Raises StoreUnavailable on infrastructure faults (nothing charged in that case).
        """
        requested = normalize_ids(requested_ids)
        if not requested:
            raise ValueError("requested_ids must be non-empty")

        descriptor = self.registry.get(vertical_key)
        if descriptor is None:
            unlock_requests_total.labels(vertical_key="unknown", outcome=UnlockFailure.UNKNOWN_VERTICAL.value).inc()
            logger.warning("unlock_unknown_vertical", extra={"account_id": account_id, "vertical_key": vertical_key})
            return UnlockResult(
                ok=False,
                vertical_key=vertical_key,
                requested=sorted(requested),
                failure=UnlockFailure.UNKNOWN_VERTICAL,
                message=f"Unknown vertical: {vertical_key}",
            )

        start = time.time()
        try:
            with self.locks.hold(account_id):
                result = self._run_with_conflict_retry(account_id, descriptor, requested)
        except StoreUnavailable as e:
            unlock_requests_total.labels(vertical_key=vertical_key, outcome=UnlockFailure.STORE_UNAVAILABLE.value).inc()
            logger.warning(
                "unlock_store_unavailable",
                extra={"account_id": account_id, "vertical_key": vertical_key, "error": str(e)},
            )
            raise
        finally:
            unlock_duration_seconds.labels(vertical_key=vertical_key).observe(time.time() - start)

        unlock_requests_total.labels(vertical_key=vertical_key, outcome=result.outcome).inc()
        if result.newly_granted:
            records_unlocked_total.labels(vertical_key=vertical_key).inc(len(result.newly_granted))
            credits_charged_total.labels(vertical_key=vertical_key).inc(result.charged)
        return result

    def _run_with_conflict_retry(
        self, account_id: str, descriptor: VerticalDescriptor, requested: set[str]
    ) -> UnlockResult:
        for attempt in range(MAX_CONFLICT_RETRIES + 1):
            try:
                return self._execute(account_id, descriptor, requested)
            except (IntegrityError, GrantConflict) as e:
                # Charge and grants were rolled back together; re-evaluate against committed grants
                unlock_conflicts_total.labels(vertical_key=descriptor.key).inc()
                logger.warning(
                    "unlock_grant_conflict",
                    extra={
                        "account_id": account_id,
                        "vertical_key": descriptor.key,
                        "attempt": attempt,
                        "error": type(e).__name__,
                    },
                )
        raise StoreUnavailable("unlock kept conflicting with concurrent grants")

    def _execute(self, account_id: str, descriptor: VerticalDescriptor, requested: set[str]) -> UnlockResult:
        key = descriptor.key
        try:
            # Serializes charges of this account at the database level
            self.ledger.lock_account(account_id)
            owned = self.entitlements.list_granted(account_id, key)
            already = requested & owned
            new_ids = requested - owned

            if not new_ids:
                balance = self.ledger.balance(account_id)
                self.db.rollback()
                logger.info(
                    "unlock_noop",
                    extra={"account_id": account_id, "vertical_key": key, "requested": len(requested)},
                )
                return UnlockResult(
                    ok=True,
                    vertical_key=key,
                    requested=sorted(requested),
                    already_granted=sorted(already),
                    remaining_balance=balance,
                )

            cost = len(new_ids) * self.unit_cost
            balance = self.ledger.balance(account_id)
            if balance < cost:
                self.db.rollback()
                logger.info(
                    "unlock_insufficient_credits",
                    extra={"account_id": account_id, "vertical_key": key, "required": cost, "balance": balance},
                )
                return UnlockResult(
                    ok=False,
                    vertical_key=key,
                    requested=sorted(requested),
                    already_granted=sorted(already),
                    remaining_balance=balance,
                    failure=UnlockFailure.INSUFFICIENT_CREDITS,
                    required=cost,
                    message=f"Insufficient credits. Required: {cost}, available: {balance}.",
                )

            unlock_id = str(uuid4())
            self.ledger.append(account_id, -cost, unlock_reason(key), reference_id=unlock_id, commit=False)
            granted = self.entitlements.grant(account_id, key, new_ids)
            if granted != new_ids:
                raise GrantConflict(f"granted {len(granted)} of {len(new_ids)} charged ids")
            with store_errors("ledger"):
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        remaining = balance - cost
        logger.info(
            "unlock_granted",
            extra={
                "account_id": account_id,
                "vertical_key": key,
                "unlock_id": unlock_id,
                "requested": len(requested),
                "newly_granted": len(new_ids),
                "already_granted": len(already),
                "charged": cost,
                "balance": remaining,
            },
        )
        return UnlockResult(
            ok=True,
            vertical_key=key,
            requested=sorted(requested),
            newly_granted=sorted(new_ids),
            already_granted=sorted(already),
            charged=cost,
            remaining_balance=remaining,
            unlock_id=unlock_id,
        )
