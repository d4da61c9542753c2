"""Inbound and adjustment stock entries."""

import pytest

from bevstock.extensions import db
from bevstock.models import AuditLog, StockEntry
from bevstock.services import sales_service
from bevstock.services.stock_entry_service import list_stock_entries, record_stock_entry
from bevstock.services.stock_service import get_stock_level
from bevstock.validation import ValidationError


def test_inbound_increases_received(db_session, make_product):
    p = make_product(opening_stock=5)
    entry = record_stock_entry(
        product_id=p.id, quantity=12, entry_type="inbound", buying_price_cents=90, actor_id="u1"
    )

    assert entry.type == "inbound"
    assert entry.buying_price_cents == 90
    assert entry.created_by == "u1"
    level = get_stock_level(p)
    assert (level.received, level.current_stock) == (12, 17)
    # the product row itself is untouched
    db.session.refresh(p)
    assert p.opening_stock == 5


def test_inbound_drops_reason(db_session, make_product):
    p = make_product()
    entry = record_stock_entry(product_id=p.id, quantity=1, entry_type="inbound", reason="ignored")
    assert entry.reason is None


@pytest.mark.parametrize("qty", [0, -3])
def test_inbound_requires_positive_quantity(db_session, make_product, qty):
    p = make_product()
    with pytest.raises(ValidationError):
        record_stock_entry(product_id=p.id, quantity=qty, entry_type="inbound")
    assert db.session.query(StockEntry).count() == 0


def test_adjustment_either_sign(db_session, make_product):
    p = make_product(opening_stock=10)
    record_stock_entry(product_id=p.id, quantity=-4, entry_type="adjustment", reason="breakage")
    record_stock_entry(product_id=p.id, quantity=1, entry_type="adjustment", reason="recount")
    level = get_stock_level(p)
    assert (level.adjustments, level.current_stock) == (-3, 7)


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_adjustment_requires_reason(db_session, make_product, reason):
    p = make_product()
    with pytest.raises(ValidationError):
        record_stock_entry(product_id=p.id, quantity=-1, entry_type="adjustment", reason=reason)
    assert db.session.query(StockEntry).count() == 0


def test_adjustment_rejects_zero_and_buying_price(db_session, make_product):
    p = make_product()
    with pytest.raises(ValidationError):
        record_stock_entry(product_id=p.id, quantity=0, entry_type="adjustment", reason="x")
    with pytest.raises(ValidationError):
        record_stock_entry(
            product_id=p.id, quantity=2, entry_type="adjustment", reason="x", buying_price_cents=10
        )


@pytest.mark.parametrize("notes", ["   ", "", "\t\n"])
def test_blank_notes_stored_as_null_like_sales(db_session, make_product, notes):
    p = make_product()
    entry = record_stock_entry(product_id=p.id, quantity=4, entry_type="inbound", notes=notes)
    sale = sales_service.record_sale(
        lines=[{"product_id": p.id, "quantity": 1}], payment_type="Cash", notes=notes
    ).sale

    assert entry.notes is None
    assert sale.notes is None
    assert db.session.get(StockEntry, entry.id).notes is None


def test_notes_are_trimmed(db_session, make_product):
    p = make_product()
    entry = record_stock_entry(product_id=p.id, quantity=2, entry_type="inbound", notes="  crate 4  ")
    assert entry.notes == "crate 4"


def test_unknown_product(db_session):
    with pytest.raises(ValidationError):
        record_stock_entry(product_id=999, quantity=1, entry_type="inbound")


def test_quantity_must_be_integer(db_session, make_product):
    p = make_product()
    with pytest.raises(ValidationError):
        record_stock_entry(product_id=p.id, quantity="2.5", entry_type="inbound")


def test_audit_actions(db_session, make_product):
    p = make_product()
    record_stock_entry(product_id=p.id, quantity=3, entry_type="inbound", actor_id="u1")
    record_stock_entry(product_id=p.id, quantity=-1, entry_type="adjustment", reason="spill", actor_id="u1")

    actions = sorted(a.action for a in db.session.query(AuditLog).filter_by(entity="stock_entry"))
    assert actions == ["stock_adjusted", "stock_received"]


def test_list_newest_first(db_session, make_product):
    p = make_product()
    a = record_stock_entry(product_id=p.id, quantity=1, entry_type="inbound")
    b = record_stock_entry(product_id=p.id, quantity=2, entry_type="inbound")
    assert [e.id for e in list_stock_entries(p.id)] == [b.id, a.id]
