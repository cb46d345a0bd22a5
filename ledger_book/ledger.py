"""Running-balance calculator for supplier ledgers.

A supplier's transactions, payments and transfers are merged into one
chronological timeline and folded into two accumulators:

* the sales balance: money received from the supplier minus what the
  supplier's goods sold for, adjusted by payments and transfers;
* the factory balance: money paid to the factory on the supplier's behalf
  minus what the supplier's goods cost to purchase.

The cash-flow balance is always derived as ``sales - factory``. It is never
accumulated on its own.

Events sharing a date are ordered by kind (transaction, then payments, then
transfers) and finally by record id, so the same input always produces the
same sequence of balances. Everything in this module is a pure function of
its inputs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Union

from .models import (
    BalanceTransfer,
    Expense,
    PaymentClassification,
    SupplierPayment,
    Transaction,
    TransferAccount,
)
from .profit import ProfitSummary, summarise_profit

LedgerRecord = Union[Transaction, SupplierPayment, BalanceTransfer]

MISSING_SUPPLIER_MESSAGE = "اسم المورد غير محدد."


class EventKind(str, Enum):
    TRANSACTION = "transaction"
    SALES_PAYMENT = "sales_payment"
    FACTORY_PAYMENT = "factory_payment"
    TRANSFER = "transfer"


KIND_PRIORITY = {
    EventKind.TRANSACTION: 0,
    EventKind.SALES_PAYMENT: 1,
    EventKind.FACTORY_PAYMENT: 1,
    EventKind.TRANSFER: 2,
}

# Payment classifications that give money back to the business.
CREDITING_CLASSIFICATIONS = frozenset({PaymentClassification.SETTLEMENT_REFUND})


@dataclass(slots=True, frozen=True)
class TimelineEvent:
    kind: EventKind
    record: LedgerRecord

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def date(self) -> date:
        return self.record.date

    def sort_key(self) -> tuple[date, int, str]:
        return (self.date, KIND_PRIORITY[self.kind], self.id)


@dataclass(slots=True, frozen=True)
class BalanceSnapshot:
    """Balances right after ``event`` was applied."""

    event: TimelineEvent
    sales_balance: float
    factory_balance: float

    @property
    def cash_flow_balance(self) -> float:
        return self.sales_balance - self.factory_balance


@dataclass(slots=True)
class TonBreakdown:
    purchased: float = 0.0
    sold: float = 0.0

    @property
    def remaining(self) -> float:
        return self.purchased - self.sold


@dataclass(slots=True)
class SupplierStatement:
    """Everything the supplier report pages show for one supplier."""

    supplier_name: str
    entries: list[BalanceSnapshot] = field(default_factory=list)
    sales_balance: float = 0.0
    factory_balance: float = 0.0
    total_purchases: float = 0.0
    total_sales: float = 0.0
    tons_purchased: float = 0.0
    tons_sold: float = 0.0
    by_category: dict[str, TonBreakdown] = field(default_factory=dict)
    by_variety: dict[str, TonBreakdown] = field(default_factory=dict)
    transfers: list[BalanceTransfer] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    profit: ProfitSummary = field(default_factory=ProfitSummary)
    transaction_count: int = 0
    error: Optional[str] = None

    @property
    def cash_flow_balance(self) -> float:
        return self.sales_balance - self.factory_balance

    @property
    def total_received_from_supplier(self) -> float:
        return self.sales_balance + self.total_sales

    @property
    def total_paid_to_factory(self) -> float:
        return self.factory_balance + self.total_purchases

    @property
    def tons_remaining(self) -> float:
        return self.tons_purchased - self.tons_sold

    def transaction_rows(self) -> list[BalanceSnapshot]:
        """Transaction entries only, newest first."""

        rows = [entry for entry in self.entries if entry.event.kind is EventKind.TRANSACTION]
        return sorted(rows, key=lambda entry: (entry.event.date, entry.event.id), reverse=True)


@dataclass(slots=True)
class SupplierSummary:
    supplier_name: str
    total_sales: float
    total_purchases: float
    total_received_from_supplier: float
    total_paid_to_factory: float
    tons_purchased: float
    tons_remaining: float
    sales_balance: float
    factory_balance: float
    cash_flow_balance: float
    transaction_count: int


@dataclass(slots=True)
class FactoryBalanceRow:
    supplier_name: str
    total_paid_to_factory: float
    total_purchases: float
    balance: float


@dataclass(slots=True)
class FactoryReport:
    rows: list[FactoryBalanceRow]

    @property
    def total_balance(self) -> float:
        return sum(row.balance for row in self.rows)


@dataclass(slots=True)
class SalesBalanceReport:
    supplier_name: str
    rows: list[BalanceSnapshot]
    total_sales: float
    total_received_from_supplier: float
    final_sales_balance: float
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

def build_timeline(
    supplier_name: str,
    transactions: Iterable[Transaction],
    payments: Iterable[SupplierPayment],
    transfers: Iterable[BalanceTransfer],
) -> list[TimelineEvent]:
    """Merge the supplier's records into one chronologically sorted list."""

    events: list[TimelineEvent] = []
    for transaction in transactions:
        if transaction.supplier_name == supplier_name:
            events.append(TimelineEvent(EventKind.TRANSACTION, transaction))
    for payment in payments:
        if payment.supplier_name != supplier_name:
            continue
        kind = EventKind.FACTORY_PAYMENT if payment.is_factory_payment else EventKind.SALES_PAYMENT
        events.append(TimelineEvent(kind, payment))
    for transfer in transfers:
        if transfer.involves(supplier_name):
            events.append(TimelineEvent(EventKind.TRANSFER, transfer))
    events.sort(key=TimelineEvent.sort_key)
    return events


def event_deltas(event: TimelineEvent, supplier_name: str) -> tuple[float, float]:
    """Return the ``(sales, factory)`` change caused by ``event``."""

    record = event.record
    if event.kind is EventKind.TRANSACTION:
        return (
            record.amount_received_from_supplier - record.total_selling_price,
            record.amount_paid_to_factory - record.total_purchase_price,
        )
    if event.kind is EventKind.SALES_PAYMENT:
        if record.classification in CREDITING_CLASSIFICATIONS:
            return record.amount, 0.0
        return -record.amount, 0.0
    if event.kind is EventKind.FACTORY_PAYMENT:
        return 0.0, record.amount
    return _transfer_deltas(record, supplier_name)


def _transfer_deltas(transfer: BalanceTransfer, supplier_name: str) -> tuple[float, float]:
    sales = 0.0
    factory = 0.0
    if transfer.to_supplier == supplier_name:
        if transfer.to_account is TransferAccount.SALES_BALANCE:
            sales += transfer.amount
        elif transfer.to_account is TransferAccount.FACTORY_BALANCE:
            factory += transfer.amount
    if transfer.from_supplier == supplier_name:
        # profit_expense is booked as an expense, not against these balances.
        if transfer.from_account is TransferAccount.SALES_BALANCE:
            sales -= transfer.amount
        elif transfer.from_account is TransferAccount.FACTORY_BALANCE:
            factory -= transfer.amount
    return sales, factory


def running_balances(
    supplier_name: str,
    transactions: Iterable[Transaction],
    payments: Iterable[SupplierPayment],
    transfers: Iterable[BalanceTransfer],
) -> list[BalanceSnapshot]:
    """Fold the supplier's timeline and return a snapshot after each event."""

    sales = 0.0
    factory = 0.0
    snapshots: list[BalanceSnapshot] = []
    for event in build_timeline(supplier_name, transactions, payments, transfers):
        sales_delta, factory_delta = event_deltas(event, supplier_name)
        sales += sales_delta
        factory += factory_delta
        snapshots.append(BalanceSnapshot(event, sales, factory))
    return snapshots


# ---------------------------------------------------------------------------
# Supplier statements
# ---------------------------------------------------------------------------

def build_statement(
    supplier_name: str,
    transactions: Iterable[Transaction],
    payments: Iterable[SupplierPayment],
    transfers: Iterable[BalanceTransfer],
    expenses: Iterable[Expense] = (),
) -> SupplierStatement:
    """Compute balances, totals and ton breakdowns for one supplier.

    A blank supplier name does not raise: the statement comes back zeroed
    with :attr:`SupplierStatement.error` set so callers can render it.
    """

    supplier_name = (supplier_name or "").strip()
    if not supplier_name:
        return SupplierStatement(supplier_name="", error=MISSING_SUPPLIER_MESSAGE)

    transactions = [t for t in transactions if t.supplier_name == supplier_name]
    transfers = [t for t in transfers if t.involves(supplier_name)]
    supplier_expenses = [e for e in expenses if e.supplier_name == supplier_name]

    statement = SupplierStatement(supplier_name=supplier_name)
    statement.entries = running_balances(supplier_name, transactions, payments, transfers)
    if statement.entries:
        last = statement.entries[-1]
        statement.sales_balance = last.sales_balance
        statement.factory_balance = last.factory_balance

    for transaction in transactions:
        statement.total_purchases += transaction.total_purchase_price
        statement.total_sales += transaction.total_selling_price
        statement.tons_purchased += transaction.quantity
        if transaction.is_sold:
            statement.tons_sold += transaction.quantity
        if transaction.category:
            _add_tons(statement.by_category, transaction.category, transaction)
        if transaction.variety:
            _add_tons(statement.by_variety, transaction.variety, transaction)

    statement.transaction_count = len(transactions)
    statement.transfers = sorted(transfers, key=lambda t: (t.date, t.id), reverse=True)
    statement.expenses = sorted(supplier_expenses, key=lambda e: (e.date, e.id), reverse=True)
    statement.profit = summarise_profit(transactions, supplier_expenses)
    return statement


def _add_tons(breakdown: dict[str, TonBreakdown], key: str, transaction: Transaction) -> None:
    tons = breakdown.setdefault(key, TonBreakdown())
    tons.purchased += transaction.quantity
    if transaction.is_sold:
        tons.sold += transaction.quantity


def supplier_names(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense],
    payments: Iterable[SupplierPayment],
    transfers: Iterable[BalanceTransfer],
) -> list[str]:
    """Every supplier name referenced anywhere in the ledger, sorted."""

    names: set[str] = {t.supplier_name for t in transactions}
    names.update(e.supplier_name for e in expenses if e.supplier_name)
    names.update(p.supplier_name for p in payments)
    for transfer in transfers:
        names.add(transfer.from_supplier)
        names.add(transfer.to_supplier)
    names.discard("")
    return sorted(names)


def supplier_summaries(
    transactions: list[Transaction],
    expenses: list[Expense],
    payments: list[SupplierPayment],
    transfers: list[BalanceTransfer],
) -> list[SupplierSummary]:
    """One summary row per supplier, highest total sales first."""

    summaries = []
    for name in supplier_names(transactions, expenses, payments, transfers):
        statement = build_statement(name, transactions, payments, transfers, expenses)
        summaries.append(
            SupplierSummary(
                supplier_name=name,
                total_sales=statement.total_sales,
                total_purchases=statement.total_purchases,
                total_received_from_supplier=statement.total_received_from_supplier,
                total_paid_to_factory=statement.total_paid_to_factory,
                tons_purchased=statement.tons_purchased,
                tons_remaining=statement.tons_remaining,
                sales_balance=statement.sales_balance,
                factory_balance=statement.factory_balance,
                cash_flow_balance=statement.cash_flow_balance,
                transaction_count=statement.transaction_count,
            )
        )
    summaries.sort(key=lambda summary: summary.total_sales, reverse=True)
    return summaries


def factory_report(
    transactions: list[Transaction],
    expenses: list[Expense],
    payments: list[SupplierPayment],
    transfers: list[BalanceTransfer],
) -> FactoryReport:
    """Factory balance per supplier, largest balance first."""

    rows = [
        FactoryBalanceRow(
            supplier_name=summary.supplier_name,
            total_paid_to_factory=summary.total_paid_to_factory,
            total_purchases=summary.total_purchases,
            balance=summary.factory_balance,
        )
        for summary in supplier_summaries(transactions, expenses, payments, transfers)
    ]
    rows.sort(key=lambda row: row.balance, reverse=True)
    return FactoryReport(rows=rows)


def sales_balance_report(
    supplier_name: str,
    transactions: Iterable[Transaction],
    payments: Iterable[SupplierPayment],
    transfers: Iterable[BalanceTransfer],
) -> SalesBalanceReport:
    """Simplified sales ledger: only the events that move the sales balance."""

    statement = build_statement(supplier_name, transactions, payments, transfers)
    rows = [
        entry
        for entry in statement.entries
        if entry.event.kind is EventKind.TRANSACTION
        or event_deltas(entry.event, statement.supplier_name)[0] != 0
    ]
    rows.reverse()
    return SalesBalanceReport(
        supplier_name=statement.supplier_name,
        rows=rows,
        total_sales=statement.total_sales,
        total_received_from_supplier=statement.total_received_from_supplier,
        final_sales_balance=statement.sales_balance,
        error=statement.error,
    )
