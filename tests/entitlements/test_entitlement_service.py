"""Tests for EntitlementService: per-vertical grants, uniqueness, idempotent grant."""
import pytest
from sqlalchemy.exc import IntegrityError

from app.models.entitlement_grant import entitlement_table_for
from app.services.entitlements.service import EntitlementService
from app.services.errors import UnknownVertical


def test_grant_returns_only_new_ids(db, registry):
    svc = EntitlementService(db, registry)
    assert svc.grant("acct", "dealflow", {"a", "b"}) == {"a", "b"}
    db.commit()

    assert svc.grant("acct", "dealflow", {"a", "b", "c"}) == {"c"}
    db.commit()
    assert svc.list_granted("acct", "dealflow") == {"a", "b", "c"}


def test_grant_of_owned_ids_is_noop(db, registry):
    svc = EntitlementService(db, registry)
    svc.grant("acct", "dealflow", ["a"])
    db.commit()
    assert svc.grant("acct", "dealflow", ["a"]) == set()
    db.commit()

    table = entitlement_table_for(registry.require("dealflow"))
    assert len(db.execute(table.select()).fetchall()) == 1


def test_grants_are_scoped_by_account_and_vertical(db, registry):
    svc = EntitlementService(db, registry)
    svc.grant("acct", "dealflow", ["a"])
    svc.grant("acct", "salesintel", ["a", "b"])
    svc.grant("other", "dealflow", ["z"])
    db.commit()

    assert svc.list_granted("acct", "dealflow") == {"a"}
    assert svc.list_granted("acct", "salesintel") == {"a", "b"}
    assert svc.list_granted("other", "dealflow") == {"z"}
    assert svc.list_granted("nobody", "dealflow") == set()


def test_grant_normalises_ids_to_strings(db, registry):
    svc = EntitlementService(db, registry)
    assert svc.grant("acct", "dealflow", [1, 2]) == {"1", "2"}


def test_list_grants_carries_vertical_and_timestamp(db, registry):
    svc = EntitlementService(db, registry)
    svc.grant("acct", "govintel", ["k1"])
    db.commit()

    grants = svc.list_grants("acct", "govintel")
    assert len(grants) == 1
    assert grants[0].vertical_key == "govintel"
    assert grants[0].record_id == "k1"
    assert grants[0].granted_at is not None


def test_unique_constraint_rejects_duplicate_rows(db, registry):
    descriptor = registry.require("dealflow")
    table = entitlement_table_for(descriptor)
    db.execute(table.insert(), [{"account_id": "acct", descriptor.entitlement_key_field: "a"}])
    db.commit()
    with pytest.raises(IntegrityError):
        db.execute(table.insert(), [{"account_id": "acct", descriptor.entitlement_key_field: "a"}])
    db.rollback()


def test_unknown_vertical(db, registry):
    svc = EntitlementService(db, registry)
    with pytest.raises(UnknownVertical):
        svc.list_granted("acct", "nope")
    with pytest.raises(UnknownVertical):
        svc.grant("acct", "nope", ["a"])
