"""Aggregate sales and profit reports."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from .ledger import supplier_summaries
from .models import BalanceTransfer, Expense, SupplierPayment, Transaction
from .profit import ProfitSummary, summarise_profit

ALL_GOVERNORATES = "all"
GROUP_BY_LOCATION = "location"
GROUP_BY_MONTH = "month"


@dataclass(slots=True)
class ReportFilter:
    """Governorate and inclusive date range applied to a report."""

    governorate: str = ALL_GOVERNORATES
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @property
    def governorate_selected(self) -> bool:
        return self.governorate != ALL_GOVERNORATES

    def matches_date(self, value: date) -> bool:
        # Without a start date the range is ignored entirely.
        if self.date_from is None:
            return True
        if value < self.date_from:
            return False
        return self.date_to is None or value <= self.date_to

    def apply(self, transactions: Iterable[Transaction]) -> list[Transaction]:
        return [
            t
            for t in transactions
            if (not self.governorate_selected or t.governorate == self.governorate)
            and self.matches_date(t.date)
        ]

    def apply_expenses(self, expenses: Iterable[Expense]) -> list[Expense]:
        return [e for e in expenses if self.matches_date(e.date)]


@dataclass(slots=True)
class ProfitReportRow:
    key: str
    name: str
    summary: ProfitSummary

    def as_dict(self) -> dict[str, object]:
        return {
            "key": self.key,
            "name": self.name,
            "total_sales": self.summary.total_sales,
            "count": self.summary.count,
            "total_profit": self.summary.total_profit,
            "profit_percentage": self.summary.profit_percentage,
        }


@dataclass(slots=True)
class ProfitReport:
    group_by: str
    grouping_header: str
    rows: list[ProfitReportRow]
    totals: ProfitSummary


def profit_report(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    report_filter: Optional[ReportFilter] = None,
    group_by: str = GROUP_BY_LOCATION,
) -> ProfitReport:
    """Group filtered transactions by location or month.

    Group rows carry the profit before expenses. Expenses inside the date range
    are subtracted from the report totals only, since they are not tied to a
    location.
    """

    if group_by not in (GROUP_BY_LOCATION, GROUP_BY_MONTH):
        raise ValueError(f"Unsupported grouping: {group_by!r}")

    report_filter = report_filter or ReportFilter()
    filtered = report_filter.apply(transactions)

    groups: dict[str, ProfitReportRow] = {}
    for transaction in filtered:
        key, name = _group_key(transaction, report_filter, group_by)
        row = groups.get(key)
        if row is None:
            row = groups[key] = ProfitReportRow(key=key, name=name, summary=ProfitSummary())
        row.summary.add(transaction)

    rows = list(groups.values())
    if group_by == GROUP_BY_MONTH:
        rows.sort(key=lambda row: row.key)
        header = "الشهر"
    else:
        rows.sort(key=lambda row: row.summary.total_sales, reverse=True)
        header = "المركز" if report_filter.governorate_selected else "المحافظة"

    totals = summarise_profit(filtered, report_filter.apply_expenses(expenses))
    return ProfitReport(group_by=group_by, grouping_header=header, rows=rows, totals=totals)


def _group_key(transaction: Transaction, report_filter: ReportFilter, group_by: str) -> tuple[str, str]:
    if group_by == GROUP_BY_MONTH:
        key = transaction.date.strftime("%Y-%m")
        return key, key
    if report_filter.governorate_selected:
        key = transaction.city or f"({transaction.governorate} - غير محدد)"
    else:
        key = transaction.governorate
    return key, key


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def filter_transactions(
    transactions: Iterable[Transaction],
    search: Optional[str] = None,
    on_date: Optional[date] = None,
) -> list[Transaction]:
    """Case-insensitive text search plus optional single-day filter, newest first."""

    needle = (search or "").strip().lower()
    matched = []
    for transaction in transactions:
        if needle:
            haystack = (
                transaction.description,
                transaction.supplier_name,
                transaction.governorate,
                transaction.city,
                transaction.product_type,
            )
            if not any(needle in (value or "").lower() for value in haystack):
                continue
        if on_date is not None and transaction.date != on_date:
            continue
        matched.append(transaction)
    matched.sort(key=lambda t: (t.date, t.id), reverse=True)
    return matched


def dashboard_summary(
    transactions: Sequence[Transaction],
    expenses: Sequence[Expense],
    payments: Sequence[SupplierPayment],
    transfers: Sequence[BalanceTransfer],
    search: Optional[str] = None,
    on_date: Optional[date] = None,
) -> dict[str, object]:
    """Headline figures for the main ledger page.

    Totals follow the search filter; the suppliers' sales balance always
    covers the whole ledger.
    """

    filtered = filter_transactions(transactions, search, on_date)
    monthly: dict[str, float] = {}
    for transaction in filtered:
        month = transaction.date.strftime("%Y-%m")
        monthly[month] = monthly.get(month, 0.0) + transaction.profit

    summaries = supplier_summaries(list(transactions), list(expenses), list(payments), list(transfers))
    return {
        "total_sales": sum(t.total_selling_price for t in filtered),
        "total_purchases": sum(t.total_purchase_price for t in filtered),
        "total_profit": sum(t.profit for t in filtered),
        "total_suppliers_sales_balance": sum(s.sales_balance for s in summaries),
        "transaction_count": len(filtered),
        "monthly_profit": [
            {"month": month, "profit": monthly[month]} for month in sorted(monthly)
        ],
    }


def ledger_totals(records: Iterable[Expense | SupplierPayment | BalanceTransfer]) -> dict[str, float]:
    """Amount total and record count for the expenses, payments and transfers lists."""

    amounts = [record.amount for record in records]
    return {"total_amount": sum(amounts), "count": len(amounts)}
