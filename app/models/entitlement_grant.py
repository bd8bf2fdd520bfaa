"""
Per-vertical entitlement tables. Every vertical keeps its grants in its own table
(descriptor.entitlement_table) with the record id stored in descriptor.entitlement_key_field.
Tables are defined on Base.metadata on first use, so create_all / migrations see them.
"""
from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import Column, DateTime, String, Table, UniqueConstraint

from app.db.base import Base
from app.verticals.models import VerticalDescriptor

_tables_lock = threading.Lock()


class EntitlementGrant(BaseModel):
    """Read model of one grant row."""

    account_id: str
    vertical_key: str
    record_id: str
    granted_at: datetime | None = None

    model_config = {"frozen": True}


def entitlement_table_for(descriptor: VerticalDescriptor) -> Table:
    name = descriptor.entitlement_table
    with _tables_lock:
        existing = Base.metadata.tables.get(name)
        if existing is not None:
            return existing
        return Table(
            name,
            Base.metadata,
            Column("id", String, primary_key=True, default=lambda: str(uuid4())),
            Column("account_id", String, nullable=False, index=True),
            Column(descriptor.entitlement_key_field, String, nullable=False),
            Column(
                "granted_at",
                DateTime(timezone=True),
                nullable=False,
                default=lambda: datetime.now(timezone.utc),
            ),
            UniqueConstraint(
                "account_id",
                descriptor.entitlement_key_field,
                name=f"uq_{name}_account_record",
            ),
        )


def register_entitlement_tables(descriptors: Iterable[VerticalDescriptor]) -> list[Table]:
    """Define tables for every vertical (call before Base.metadata.create_all)."""
    return [entitlement_table_for(d) for d in descriptors]
