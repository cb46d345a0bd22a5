"""Tests for profit reports and the dashboard."""

from dataclasses import replace
from datetime import date

import pytest

from ledger_book.reports import (
    GROUP_BY_MONTH,
    ReportFilter,
    dashboard_summary,
    filter_transactions,
    ledger_totals,
    profit_report,
)


@pytest.fixture
def sample_transactions(make_transaction):
    return [
        make_transaction(
            id="t1", day=1, selling_price=150, governorate="Cairo", city="Nasr", description="rice lot"
        ),
        make_transaction(
            id="t2", day=2, supplier="B", selling_price=200, governorate="Giza", city="Dokki"
        ),
        make_transaction(id="t3", day=3, governorate="Cairo", description="wheat"),
    ]


@pytest.fixture
def sample_expenses(make_expense):
    return [make_expense(id="e1", day=2, amount=100), make_expense(id="e2", day=10, amount=50)]


class TestReportFilter:
    def test_no_start_date_ignores_range(self):
        report_filter = ReportFilter(date_to=date(2024, 1, 1))
        assert report_filter.matches_date(date(2030, 5, 5))

    def test_inclusive_range(self):
        report_filter = ReportFilter(date_from=date(2024, 1, 2), date_to=date(2024, 1, 3))
        assert not report_filter.matches_date(date(2024, 1, 1))
        assert report_filter.matches_date(date(2024, 1, 2))
        assert report_filter.matches_date(date(2024, 1, 3))
        assert not report_filter.matches_date(date(2024, 1, 4))

    def test_open_ended_range(self):
        report_filter = ReportFilter(date_from=date(2024, 1, 2))
        assert report_filter.matches_date(date(2099, 1, 1))


class TestProfitReport:
    def test_grouped_by_governorate(self, sample_transactions, sample_expenses):
        report = profit_report(sample_transactions, sample_expenses)
        assert report.grouping_header == "المحافظة"
        assert [row.name for row in report.rows] == ["Giza", "Cairo"]
        cairo = report.rows[1]
        assert cairo.summary.count == 2
        assert cairo.summary.total_sales == 1500
        assert cairo.summary.total_profit == 500
        assert report.totals.expenses == 150
        assert report.totals.total_profit == 1350

    def test_grouped_by_city_within_governorate(self, sample_transactions, sample_expenses):
        report = profit_report(sample_transactions, sample_expenses, ReportFilter(governorate="Cairo"))
        assert report.grouping_header == "المركز"
        assert {row.name for row in report.rows} == {"Nasr", "(Cairo - غير محدد)"}
        assert report.totals.count == 2

    def test_date_range_applies_to_expenses(self, sample_transactions, sample_expenses):
        report_filter = ReportFilter(date_from=date(2024, 1, 2), date_to=date(2024, 1, 3))
        report = profit_report(sample_transactions, sample_expenses, report_filter)
        assert report.totals.count == 2
        assert report.totals.expenses == 100
        assert report.totals.total_profit == 900

    def test_grouped_by_month(self, sample_transactions):
        transactions = sample_transactions + [replace(sample_transactions[0], id="t4", date=date(2023, 12, 30))]
        report = profit_report(transactions, [], group_by=GROUP_BY_MONTH)
        assert report.grouping_header == "الشهر"
        assert [row.key for row in report.rows] == ["2023-12", "2024-01"]
        assert report.rows[1].summary.count == 3

    def test_unknown_grouping(self, sample_transactions):
        with pytest.raises(ValueError):
            profit_report(sample_transactions, [], group_by="supplier")

    def test_row_payload(self, sample_transactions):
        row = profit_report(sample_transactions, []).rows[0]
        assert row.as_dict() == {
            "key": "Giza",
            "name": "Giza",
            "total_sales": 2000,
            "count": 1,
            "total_profit": 1000,
            "profit_percentage": 50,
        }


class TestDashboard:
    def test_search_is_case_insensitive(self, sample_transactions):
        matched = filter_transactions(sample_transactions, search="GIZA")
        assert [t.id for t in matched] == ["t2"]

    def test_search_matches_description_and_supplier(self, sample_transactions):
        assert [t.id for t in filter_transactions(sample_transactions, search="wheat")] == ["t3"]
        assert [t.id for t in filter_transactions(sample_transactions, search="b")] == ["t2"]

    def test_on_date_filter(self, sample_transactions):
        matched = filter_transactions(sample_transactions, on_date=date(2024, 1, 3))
        assert [t.id for t in matched] == ["t3"]

    def test_newest_first(self, sample_transactions):
        assert [t.id for t in filter_transactions(sample_transactions)] == ["t3", "t2", "t1"]

    def test_summary(self, sample_transactions, sample_expenses, make_payment):
        summary = dashboard_summary(
            sample_transactions, sample_expenses, [make_payment(amount=200)], [], search="cairo"
        )
        assert summary["transaction_count"] == 2
        assert summary["total_sales"] == 1500
        assert summary["total_purchases"] == 2000
        assert summary["total_profit"] == 500
        # A owes 1500 for t1 plus a 200 payment; B owes 2000. Not narrowed by the search.
        assert summary["total_suppliers_sales_balance"] == -3700
        assert summary["monthly_profit"] == [{"month": "2024-01", "profit": 500}]


def test_ledger_totals(make_expense):
    totals = ledger_totals([make_expense(id="e1", amount=20), make_expense(id="e2", amount=30)])
    assert totals == {"total_amount": 50, "count": 2}
