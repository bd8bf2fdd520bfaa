"""
Record source: rows of a vertical's record table, read via SQLAlchemy reflection.
Column semantics are opaque here; only the id field matters.
"""
import logging
import threading
from typing import Any

from sqlalchemy import MetaData, Table, select
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.services.errors import StoreUnavailable
from app.verticals.models import VerticalDescriptor

logger = logging.getLogger(__name__)


class RecordService:
    _metadata = MetaData()
    _reflect_lock = threading.Lock()

    def __init__(self, db: Session):
        self.db = db

    def _table(self, descriptor: VerticalDescriptor) -> Table:
        name = descriptor.record_table
        with self._reflect_lock:
            table = self._metadata.tables.get(name)
            if table is not None:
                return table
            try:
                return Table(name, self._metadata, autoload_with=self.db.get_bind())
            except NoSuchTableError as e:
                raise StoreUnavailable(f"record table missing: {name}", cause=e) from e
            except SQLAlchemyError as e:
                raise StoreUnavailable(f"records unavailable: {type(e).__name__}", cause=e) from e

    def list_records(self, descriptor: VerticalDescriptor, limit: int = 100) -> list[dict[str, Any]]:
        """Ordered by the record id field. The id is returned as a string under the same key."""
        table = self._table(descriptor)
        id_field = descriptor.record_id_field
        if id_field not in table.c:
            raise StoreUnavailable(f"{descriptor.record_table} has no column {id_field}")
        try:
            rows = self.db.execute(select(table).order_by(table.c[id_field]).limit(limit)).mappings().all()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"records unavailable: {type(e).__name__}", cause=e) from e
        records = []
        for row in rows:
            record = dict(row)
            record[id_field] = str(record[id_field])
            records.append(record)
        return records

    @classmethod
    def reset_cache(cls) -> None:
        """Forget reflected tables (schema changed / tests)."""
        with cls._reflect_lock:
            cls._metadata.clear()
