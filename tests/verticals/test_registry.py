"""Tests for the vertical registry and catalog."""
import pytest

from app.services.errors import UnknownVertical
from app.verticals import VerticalDescriptor, VerticalRegistry, build_registry
from app.verticals.catalog import BUILTIN_VERTICALS
from app.verticals.registry import load_descriptors_from_yaml


def _descriptor(key: str, **overrides) -> VerticalDescriptor:
    fields = {
        "key": key,
        "label": key.title(),
        "short_label": key,
        "record_table": f"{key}_rows",
        "entitlement_table": f"{key}_access",
        "entitlement_key_field": "row_id",
        "unlock_operation": f"unlock_{key}_rows",
        "unlock_operation_param": "row_ids",
    }
    fields.update(overrides)
    return VerticalDescriptor(**fields)


def test_builtin_catalog_has_sixteen_distinct_verticals():
    registry = build_registry()
    assert len(registry) == 16
    keys = [d.key for d in registry.all()]
    assert len(set(keys)) == 16
    assert len({d.entitlement_table for d in BUILTIN_VERTICALS}) == 16


def test_dealflow_descriptor_shape():
    descriptor = build_registry().require("dealflow")
    assert descriptor.record_table == "dealflow_companies"
    assert descriptor.entitlement_table == "dealflow_access"
    assert descriptor.entitlement_key_field == "company_id"
    assert descriptor.unlock_operation == "unlock_dealflow_companies"
    assert descriptor.unlock_operation_param == "company_ids"


def test_get_and_require():
    registry = build_registry()
    assert registry.get("salesintel").key == "salesintel"
    assert registry.get("nope") is None
    assert "dealflow" in registry
    assert "nope" not in registry
    with pytest.raises(UnknownVertical) as exc:
        registry.require("nope")
    assert exc.value.key == "nope"


def test_by_operation_resolves_legacy_names():
    registry = build_registry()
    assert registry.by_operation("unlock_dealflow_companies").key == "dealflow"
    assert registry.by_operation("unlock_salesintel_leads").key == "salesintel"
    assert registry.by_operation("unlock_everything") is None


def test_public_dict_hides_storage_names():
    public = build_registry().require("dealflow").public_dict()
    assert public["key"] == "dealflow"
    assert "entitlement_table" not in public
    assert "record_table" not in public


def test_descriptor_is_immutable():
    descriptor = _descriptor("alpha")
    with pytest.raises(Exception):
        descriptor.key = "beta"


@pytest.mark.parametrize(
    "second",
    [
        _descriptor("alpha", entitlement_table="beta_access", unlock_operation="unlock_beta_rows"),
        _descriptor("beta", entitlement_table="alpha_access"),
        _descriptor("beta", unlock_operation="unlock_alpha_rows"),
    ],
)
def test_duplicates_rejected(second):
    with pytest.raises(ValueError):
        VerticalRegistry([_descriptor("alpha"), second])


def test_load_from_yaml(tmp_path):
    path = tmp_path / "verticals.yaml"
    path.write_text(
        """
verticals:
  - key: alpha
    label: Alpha Intelligence
    short_label: Alpha
    record_table: alpha_rows
    entitlement_table: alpha_access
    entitlement_key_field: row_id
    unlock_operation: unlock_alpha_rows
    unlock_operation_param: row_ids
""",
        encoding="utf-8",
    )
    registry = build_registry(str(path))
    assert len(registry) == 1
    assert registry.require("alpha").record_id_field == "id"
    assert registry.by_operation("unlock_alpha_rows").key == "alpha"


@pytest.mark.parametrize(
    "content",
    [
        "",
        "verticals: []\n",
        "something_else: 1\n",
        "verticals:\n  - key: alpha\n",
    ],
)
def test_invalid_yaml_rejected(tmp_path, content):
    path = tmp_path / "verticals.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_descriptors_from_yaml(path)
