import logging
from typing import Iterable

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from app.models.entitlement_grant import EntitlementGrant, entitlement_table_for
from app.services.ledger.service import store_errors
from app.verticals.registry import VerticalRegistry, get_registry

logger = logging.getLogger(__name__)


class EntitlementService:
    """
    Grants per (account, vertical, record). Uniqueness is enforced here:
    ids already granted are filtered out, and the table's unique constraint
    rejects a concurrent duplicate with IntegrityError (caller rolls back).
    """

    def __init__(self, db: Session, registry: VerticalRegistry | None = None):
        self.db = db
        self.registry = registry or get_registry()

    def list_granted(self, account_id: str, vertical_key: str) -> set[str]:
        descriptor = self.registry.require(vertical_key)
        table = entitlement_table_for(descriptor)
        key_column = table.c[descriptor.entitlement_key_field]
        with store_errors("entitlements"):
            rows = self.db.execute(select(key_column).where(table.c.account_id == account_id))
            return {str(row[0]) for row in rows}

    def list_grants(self, account_id: str, vertical_key: str) -> list[EntitlementGrant]:
        descriptor = self.registry.require(vertical_key)
        table = entitlement_table_for(descriptor)
        key_column = table.c[descriptor.entitlement_key_field]
        with store_errors("entitlements"):
            rows = self.db.execute(
                select(key_column, table.c.granted_at)
                .where(table.c.account_id == account_id)
                .order_by(table.c.granted_at)
            ).all()
        return [
            EntitlementGrant(
                account_id=account_id,
                vertical_key=vertical_key,
                record_id=str(record_id),
                granted_at=granted_at,
            )
            for record_id, granted_at in rows
        ]

    def grant(self, account_id: str, vertical_key: str, record_ids: Iterable[str]) -> set[str]:
        """
        Insert grants for ids not yet granted; returns the newly inserted ids.
        Flush only: runs inside the unlock transaction, which commits charge and grants together.
        """
        descriptor = self.registry.require(vertical_key)
        table = entitlement_table_for(descriptor)
        requested = {str(rid) for rid in record_ids}
        if not requested:
            return set()
        new_ids = requested - self.list_granted(account_id, vertical_key)
        if not new_ids:
            return set()
        with store_errors("entitlements"):
            self.db.execute(
                insert(table),
                [
                    {"account_id": account_id, descriptor.entitlement_key_field: rid}
                    for rid in sorted(new_ids)
                ],
            )
            self.db.flush()
        logger.info(
            "entitlements_granted",
            extra={"account_id": account_id, "vertical_key": vertical_key, "newly_granted": len(new_ids)},
        )
        return new_ids
