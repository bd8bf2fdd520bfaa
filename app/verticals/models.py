"""
VerticalDescriptor: static metadata of one data vertical (record table, entitlement table, unlock operation).
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class VerticalDescriptor(BaseModel):
    """Immutable description of a vertical. Loaded once at process start."""

    key: str
    label: str
    short_label: str
    description: str = ""
    icon: str = ""
    # Source of rows shown in the dashboard
    record_table: str
    record_id_field: str = "id"
    # Grants: one row per (account, record) in entitlement_table
    entitlement_table: str
    entitlement_key_field: str
    # Legacy named operation + its parameter name; resolved to the single unlock operation
    unlock_operation: str
    unlock_operation_param: str = Field(..., description="Body field holding the record ids")

    model_config = {"frozen": True}

    def public_dict(self) -> dict:
        """Fields safe to expose to dashboard clients."""
        return {
            "key": self.key,
            "label": self.label,
            "short_label": self.short_label,
            "description": self.description,
            "icon": self.icon,
            "record_id_field": self.record_id_field,
            "unlock_operation": self.unlock_operation,
            "unlock_operation_param": self.unlock_operation_param,
        }
