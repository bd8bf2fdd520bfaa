from typing import Any

from pydantic import BaseModel


class VerticalOut(BaseModel):
    key: str
    label: str
    short_label: str
    description: str
    icon: str
    record_id_field: str
    unlock_operation: str
    unlock_operation_param: str


class RecordsOut(BaseModel):
    vertical_key: str
    records: list[dict[str, Any]]
