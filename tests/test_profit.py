"""Tests for profit and stock aggregation."""

import pytest

from ledger_book.profit import ProfitSummary, summarise_profit


def test_unsold_stock_carries_no_profit(make_transaction):
    summary = summarise_profit([make_transaction(quantity=10, purchase_price=100)])
    assert summary.remaining_stock_value == 1000
    assert summary.cost_of_goods_sold == 0
    assert summary.total_profit == 0
    assert summary.profit_percentage == 0


def test_taxes_and_expenses_charged_on_sold_goods(make_transaction, make_expense):
    transactions = [
        make_transaction(id="t1"),
        make_transaction(id="t2", selling_price=150, taxes=50),
    ]
    summary = summarise_profit(transactions, [make_expense(amount=100)])
    assert summary.total_sales == 1500
    assert summary.total_purchases == 2000
    assert summary.remaining_stock_value == 1000
    assert summary.cost_of_goods_sold == 1000
    assert summary.taxes_on_sold_items == 50
    assert summary.expenses == 100
    assert summary.total_profit == 350
    assert summary.profit_percentage == pytest.approx(350 / 1500 * 100)
    assert summary.count == 2


def test_taxes_on_unsold_items_are_ignored(make_transaction):
    summary = summarise_profit([make_transaction(taxes=75)])
    assert summary.taxes_on_sold_items == 0
    assert summary.total_profit == 0


def test_remaining_stock_matches_unsold_purchases(make_transaction):
    transactions = [
        make_transaction(id="t1", quantity=3, purchase_price=40),
        make_transaction(id="t2", quantity=2, purchase_price=90, selling_price=100),
        make_transaction(id="t3", quantity=7, purchase_price=10),
    ]
    summary = summarise_profit(transactions)
    unsold = sum(t.total_purchase_price for t in transactions if not t.is_sold)
    assert summary.remaining_stock_value == unsold == 190


def test_empty_summary():
    summary = ProfitSummary()
    assert summary.as_dict() == {
        "total_sales": 0.0,
        "total_purchases": 0.0,
        "remaining_stock_value": 0.0,
        "cost_of_goods_sold": 0.0,
        "taxes_on_sold_items": 0.0,
        "expenses": 0.0,
        "total_profit": 0.0,
        "profit_percentage": 0.0,
        "count": 0,
    }
