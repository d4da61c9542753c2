"""Stock derivation: the pure fold and its SQL counterpart."""

import random
from dataclasses import dataclass
from datetime import datetime

import pytest

from bevstock.services import stock_service
from bevstock.services.stock_service import (
    STATUS_LOW,
    STATUS_NEGATIVE,
    STATUS_OK,
    derive_stock,
    stock_status,
    summarize_ledger,
)


@dataclass
class Entry:
    type: str
    quantity: int


@dataclass
class Item:
    quantity: int


def test_no_ledger_rows_means_opening_stock():
    level = summarize_ledger(42, [], [])
    assert level.current_stock == 42
    assert (level.received, level.sold, level.adjustments) == (0, 0, 0)


def test_formula():
    level = derive_stock(opening_stock=10, received=5, sold=7, adjustments=-3)
    assert level.current_stock == 5


def test_fold_is_order_independent():
    entries = [Entry("inbound", 12), Entry("adjustment", -4), Entry("inbound", 3), Entry("adjustment", 2)]
    items = [Item(5), Item(1), Item(7)]
    expected = summarize_ledger(20, entries, items)
    assert expected.current_stock == 20 + 15 - 13 - 2

    rng = random.Random(7)
    for _ in range(10):
        e, i = entries[:], items[:]
        rng.shuffle(e)
        rng.shuffle(i)
        assert summarize_ledger(20, e, i) == expected


def test_unknown_entry_type_rejected():
    with pytest.raises(ValueError):
        summarize_ledger(0, [Entry("transfer", 1)], [])


@pytest.mark.parametrize(
    "current, reorder, expected",
    [
        (20, 20, STATUS_LOW),
        (21, 20, STATUS_OK),
        (-1, 20, STATUS_NEGATIVE),
        (-1, None, STATUS_NEGATIVE),
        (0, None, STATUS_OK),
        (0, 0, STATUS_LOW),
    ],
)
def test_stock_status_thresholds(current, reorder, expected):
    assert stock_status(current, reorder) == expected


def test_grouped_levels_match_pure_fold(db_session, make_product, add_entry, add_sale):
    a = make_product(opening_stock=10)
    b = make_product(opening_stock=0)
    add_entry(a, "inbound", 24)
    add_entry(a, "adjustment", -2)
    add_entry(b, "adjustment", 5)
    when = datetime(2026, 3, 1, 12, 0)
    add_sale([(a, 3, 250), (b, 1, 250)], when)

    levels = stock_service.get_stock_levels()

    assert levels[a.id].current_stock == 10 + 24 - 3 - 2
    assert levels[b.id].current_stock == 0 + 5 - 1
    for p in (a, b):
        assert levels[p.id] == stock_service.get_stock_level(p)


def test_reversed_and_reversal_sales_are_not_sold(db_session, make_product, add_sale):
    p = make_product(opening_stock=10)
    when = datetime(2026, 3, 1, 12, 0)
    original = add_sale([(p, 4, 250)], when, is_reversed=True)
    add_sale([(p, -4, 250)], when, reversed_sale_id=original.id)
    add_sale([(p, 1, 250)], when)

    level = stock_service.get_stock_level(p)
    assert level.sold == 1
    assert level.current_stock == 9
    assert stock_service.get_stock_levels([p.id])[p.id] == level


def test_get_stock_levels_empty_id_list(db_session, make_product):
    make_product()
    assert stock_service.get_stock_levels([]) == {}
