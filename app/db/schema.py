from sqlalchemy.engine import Engine

from app.db.base import Base
from app.models.credit_account import CreditAccount  # noqa: F401  (registers credit_accounts)
from app.models.entitlement_grant import register_entitlement_tables
from app.models.ledger_entry import LedgerEntry  # noqa: F401  (registers credit_ledger)
from app.verticals.registry import VerticalRegistry, get_registry


def create_schema(engine: Engine, registry: VerticalRegistry | None = None) -> None:
    """Create credit_ledger, credit_accounts and one entitlement table per vertical (idempotent)."""
    register_entitlement_tables((registry or get_registry()).all())
    Base.metadata.create_all(engine)
