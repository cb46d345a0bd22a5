"""High-level application services orchestrating the ledger_book backend."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from . import ledger, reports
from .models import (
    BalanceTransfer,
    Expense,
    LedgerSnapshot,
    SupplierPayment,
    Transaction,
    TransferAccount,
)
from .schemas import ExpenseIn, PaymentIn, TransactionIn, TransferIn

logger = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    """Raised when an id does not match any stored record."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} {record_id!r} not found")
        self.kind = kind
        self.record_id = record_id


class LedgerRepository(Protocol):
    """Persistence operations the service relies on."""

    def list_transactions(self) -> list[Transaction]: ...
    def get_transaction(self, record_id: str) -> Optional[Transaction]: ...
    def add_transaction(self, transaction: Transaction) -> Transaction: ...
    def update_transaction(self, transaction: Transaction) -> bool: ...
    def delete_transaction(self, record_id: str) -> bool: ...
    def delete_supplier_transactions(self, supplier_name: str) -> int: ...

    def list_expenses(self) -> list[Expense]: ...
    def get_expense(self, record_id: str) -> Optional[Expense]: ...
    def add_expense(self, expense: Expense) -> Expense: ...
    def update_expense(self, expense: Expense) -> bool: ...
    def delete_expense(self, record_id: str) -> bool: ...

    def list_payments(self) -> list[SupplierPayment]: ...
    def get_payment(self, record_id: str) -> Optional[SupplierPayment]: ...
    def add_payment(self, payment: SupplierPayment) -> SupplierPayment: ...
    def update_payment(self, payment: SupplierPayment) -> bool: ...
    def delete_payment(self, record_id: str) -> bool: ...

    def list_transfers(self) -> list[BalanceTransfer]: ...
    def get_transfer(self, record_id: str) -> Optional[BalanceTransfer]: ...
    def add_transfer(self, transfer: BalanceTransfer) -> BalanceTransfer: ...
    def update_transfer(self, transfer: BalanceTransfer) -> bool: ...
    def delete_transfer(self, record_id: str) -> bool: ...


@dataclass(slots=True)
class TransferDeletion:
    transfer: BalanceTransfer
    # The expense booked when the transfer was created is left in place.
    linked_expense_remains: bool


class LedgerService:
    """CRUD over the four ledger collections plus the report entry points.

    Reports always run over a fresh snapshot of the repository, so they reflect
    every mutation made before the call.
    """

    def __init__(self, repository: LedgerRepository) -> None:
        self._repository = repository

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            transactions=self._repository.list_transactions(),
            expenses=self._repository.list_expenses(),
            payments=self._repository.list_payments(),
            transfers=self._repository.list_transfers(),
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def list_transactions(self, search: Optional[str] = None, on_date: Optional[date] = None) -> list[Transaction]:
        return reports.filter_transactions(self._repository.list_transactions(), search, on_date)

    def get_transaction(self, record_id: str) -> Transaction:
        transaction = self._repository.get_transaction(record_id)
        if transaction is None:
            raise RecordNotFoundError("transaction", record_id)
        return transaction

    def create_transaction(self, payload: TransactionIn) -> Transaction:
        transaction = Transaction.build(id="", **payload.model_dump())
        transaction = self._repository.add_transaction(transaction)
        logger.info("Recorded transaction %s for supplier %r", transaction.id, transaction.supplier_name)
        return transaction

    def update_transaction(self, record_id: str, payload: TransactionIn) -> Transaction:
        transaction = Transaction.build(id=record_id, **payload.model_dump())
        if not self._repository.update_transaction(transaction):
            raise RecordNotFoundError("transaction", record_id)
        return transaction

    def delete_transaction(self, record_id: str) -> None:
        if not self._repository.delete_transaction(record_id):
            raise RecordNotFoundError("transaction", record_id)

    def delete_supplier(self, supplier_name: str) -> int:
        """Delete every transaction recorded for ``supplier_name``.

        Payments, transfers and expenses naming the supplier are kept.
        """

        deleted = self._repository.delete_supplier_transactions(supplier_name)
        logger.info("Deleted supplier %r with %d transactions", supplier_name, deleted)
        return deleted

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------
    def list_expenses(self) -> list[Expense]:
        return self._repository.list_expenses()

    def get_expense(self, record_id: str) -> Expense:
        expense = self._repository.get_expense(record_id)
        if expense is None:
            raise RecordNotFoundError("expense", record_id)
        return expense

    def create_expense(self, payload: ExpenseIn) -> Expense:
        return self._repository.add_expense(Expense(id="", **payload.model_dump()))

    def update_expense(self, record_id: str, payload: ExpenseIn) -> Expense:
        expense = Expense(id=record_id, **payload.model_dump())
        if not self._repository.update_expense(expense):
            raise RecordNotFoundError("expense", record_id)
        return expense

    def delete_expense(self, record_id: str) -> None:
        if not self._repository.delete_expense(record_id):
            raise RecordNotFoundError("expense", record_id)

    # ------------------------------------------------------------------
    # Supplier payments
    # ------------------------------------------------------------------
    def list_payments(self) -> list[SupplierPayment]:
        return self._repository.list_payments()

    def get_payment(self, record_id: str) -> SupplierPayment:
        payment = self._repository.get_payment(record_id)
        if payment is None:
            raise RecordNotFoundError("payment", record_id)
        return payment

    def create_payment(self, payload: PaymentIn) -> SupplierPayment:
        payment = self._repository.add_payment(SupplierPayment(id="", **payload.model_dump()))
        logger.info(
            "Recorded %s payment %s of %.2f for supplier %r",
            payment.classification.name.lower(),
            payment.id,
            payment.amount,
            payment.supplier_name,
        )
        return payment

    def update_payment(self, record_id: str, payload: PaymentIn) -> SupplierPayment:
        payment = SupplierPayment(id=record_id, **payload.model_dump())
        if not self._repository.update_payment(payment):
            raise RecordNotFoundError("payment", record_id)
        return payment

    def delete_payment(self, record_id: str) -> None:
        if not self._repository.delete_payment(record_id):
            raise RecordNotFoundError("payment", record_id)

    # ------------------------------------------------------------------
    # Balance transfers
    # ------------------------------------------------------------------
    def list_transfers(self) -> list[BalanceTransfer]:
        return self._repository.list_transfers()

    def get_transfer(self, record_id: str) -> BalanceTransfer:
        transfer = self._repository.get_transfer(record_id)
        if transfer is None:
            raise RecordNotFoundError("transfer", record_id)
        return transfer

    def create_transfer(self, payload: TransferIn) -> BalanceTransfer:
        """Record a transfer.

        Taking the amount from ``profit_expense`` also books an expense against
        the source supplier, since that side of the transfer reduces profit
        rather than a running balance.
        """

        transfer = self._repository.add_transfer(BalanceTransfer(id="", **payload.model_dump()))
        if transfer.from_account is TransferAccount.PROFIT_EXPENSE:
            expense = self._repository.add_expense(
                Expense(
                    id="",
                    date=transfer.date,
                    description=f"تحويل رصيد إلى {transfer.to_supplier}: {transfer.reason}",
                    amount=transfer.amount,
                    supplier_name=transfer.from_supplier,
                )
            )
            logger.info("Booked expense %s for profit transfer %s", expense.id, transfer.id)
        return transfer

    def update_transfer(self, record_id: str, payload: TransferIn) -> BalanceTransfer:
        transfer = BalanceTransfer(id=record_id, **payload.model_dump())
        if not self._repository.update_transfer(transfer):
            raise RecordNotFoundError("transfer", record_id)
        return transfer

    def delete_transfer(self, record_id: str) -> TransferDeletion:
        transfer = self.get_transfer(record_id)
        if not self._repository.delete_transfer(record_id):
            raise RecordNotFoundError("transfer", record_id)
        linked = transfer.from_account is TransferAccount.PROFIT_EXPENSE
        if linked:
            logger.warning("Deleted profit transfer %s; its expense must be removed manually", record_id)
        return TransferDeletion(transfer=transfer, linked_expense_remains=linked)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def supplier_names(self) -> list[str]:
        snapshot = self.snapshot()
        return ledger.supplier_names(
            snapshot.transactions, snapshot.expenses, snapshot.payments, snapshot.transfers
        )

    def supplier_statement(self, supplier_name: str) -> ledger.SupplierStatement:
        snapshot = self.snapshot()
        return ledger.build_statement(
            supplier_name,
            snapshot.transactions,
            snapshot.payments,
            snapshot.transfers,
            snapshot.expenses,
        )

    def sales_balance_report(self, supplier_name: str) -> ledger.SalesBalanceReport:
        snapshot = self.snapshot()
        return ledger.sales_balance_report(
            supplier_name, snapshot.transactions, snapshot.payments, snapshot.transfers
        )

    def supplier_summaries(self) -> list[ledger.SupplierSummary]:
        snapshot = self.snapshot()
        return ledger.supplier_summaries(
            snapshot.transactions, snapshot.expenses, snapshot.payments, snapshot.transfers
        )

    def factory_report(self) -> ledger.FactoryReport:
        snapshot = self.snapshot()
        return ledger.factory_report(
            snapshot.transactions, snapshot.expenses, snapshot.payments, snapshot.transfers
        )

    def profit_report(
        self,
        report_filter: Optional[reports.ReportFilter] = None,
        group_by: str = reports.GROUP_BY_LOCATION,
    ) -> reports.ProfitReport:
        return reports.profit_report(
            self._repository.list_transactions(),
            self._repository.list_expenses(),
            report_filter,
            group_by,
        )

    def dashboard(self, search: Optional[str] = None, on_date: Optional[date] = None) -> dict[str, object]:
        snapshot = self.snapshot()
        return reports.dashboard_summary(
            snapshot.transactions,
            snapshot.expenses,
            snapshot.payments,
            snapshot.transfers,
            search,
            on_date,
        )

    def expense_totals(self) -> dict[str, float]:
        return reports.ledger_totals(self._repository.list_expenses())

    def payment_totals(self) -> dict[str, float]:
        return reports.ledger_totals(self._repository.list_payments())

    def transfer_totals(self) -> dict[str, float]:
        return reports.ledger_totals(self._repository.list_transfers())
