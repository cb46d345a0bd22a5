"""SQLite persistence layer for the ledger_book backend.

The repository provides a small, well-typed API that hides SQL details from the
rest of the code. It relies on the standard library :mod:`sqlite3` module.
Dates are stored as ISO strings and parsed back into :class:`~datetime.date`
values on read.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, TypeVar
from uuid import uuid4

from dateutil import parser as date_parser

from .models import (
    BalanceTransfer,
    Expense,
    PaymentClassification,
    PaymentMethod,
    SupplierPayment,
    Transaction,
    TransferAccount,
)

logger = logging.getLogger(__name__)

Record = TypeVar("Record", Transaction, Expense, SupplierPayment, BalanceTransfer)


class PersistenceError(RuntimeError):
    """Raised when the database rejects or fails an operation."""


TRANSACTION_COLUMNS = (
    "id", "date", "execution_date", "due_date", "supplier_name", "governorate",
    "city", "description", "product_type", "category", "variety", "quantity",
    "purchase_price", "total_purchase_price", "selling_price",
    "total_selling_price", "taxes", "profit", "amount_paid_to_factory",
    "amount_received_from_supplier",
)
EXPENSE_COLUMNS = ("id", "date", "description", "amount", "payment_order", "supplier_name")
PAYMENT_COLUMNS = (
    "id", "date", "supplier_name", "amount", "method", "classification",
    "reason", "responsible_person", "source_bank", "destination_bank",
    "document_url", "document_path",
)
TRANSFER_COLUMNS = (
    "id", "date", "amount", "from_supplier", "to_supplier", "from_account",
    "to_account", "reason",
)


class SQLiteRepository:
    """Encapsulates all SQLite access for the application."""

    def __init__(self, database_path: Path | str) -> None:
        self._database_path = database_path
        # FastAPI runs sync routes on a worker thread pool.
        self._connection = sqlite3.connect(database_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        # Shared by every request thread, so statements are serialised.
        self._lock = threading.Lock()

    def close(self) -> None:
        """Close the underlying SQLite connection."""

        self._connection.close()

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------
    def initialise_schema(self) -> None:
        """Create all tables required by the application if they do not exist."""

        self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                execution_date TEXT,
                due_date TEXT,
                supplier_name TEXT NOT NULL,
                governorate TEXT,
                city TEXT,
                description TEXT,
                product_type TEXT,
                category TEXT,
                variety TEXT,
                quantity REAL NOT NULL,
                purchase_price REAL NOT NULL,
                total_purchase_price REAL NOT NULL,
                selling_price REAL NOT NULL DEFAULT 0,
                total_selling_price REAL NOT NULL DEFAULT 0,
                taxes REAL NOT NULL DEFAULT 0,
                profit REAL NOT NULL DEFAULT 0,
                amount_paid_to_factory REAL NOT NULL DEFAULT 0,
                amount_received_from_supplier REAL NOT NULL DEFAULT 0
            );
            CREATE INDEX IF NOT EXISTS idx_transactions_supplier
                ON transactions (supplier_name);

            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                description TEXT NOT NULL,
                amount REAL NOT NULL,
                payment_order TEXT,
                supplier_name TEXT
            );

            CREATE TABLE IF NOT EXISTS payments (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                supplier_name TEXT NOT NULL,
                amount REAL NOT NULL,
                method TEXT,
                classification TEXT,
                reason TEXT,
                responsible_person TEXT,
                source_bank TEXT,
                destination_bank TEXT,
                document_url TEXT,
                document_path TEXT
            );

            CREATE TABLE IF NOT EXISTS transfers (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                amount REAL NOT NULL,
                from_supplier TEXT NOT NULL,
                to_supplier TEXT NOT NULL,
                from_account TEXT,
                to_account TEXT,
                reason TEXT
            );
            """
        )
        self._connection.commit()

    @staticmethod
    def new_id() -> str:
        return uuid4().hex

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def list_transactions(self) -> list[Transaction]:
        return self._select("transactions", _row_to_transaction)

    def get_transaction(self, record_id: str) -> Optional[Transaction]:
        return self._select_one("transactions", record_id, _row_to_transaction)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        return self._insert("transactions", TRANSACTION_COLUMNS, transaction)

    def update_transaction(self, transaction: Transaction) -> bool:
        return self._update("transactions", TRANSACTION_COLUMNS, transaction)

    def delete_transaction(self, record_id: str) -> bool:
        return self._delete("transactions", record_id)

    def delete_supplier_transactions(self, supplier_name: str) -> int:
        """Delete every transaction of ``supplier_name`` in one batch.

        Returns the number of deleted rows. Either all rows go or none do.
        """

        try:
            with self._lock, self._connection:
                cursor = self._connection.execute(
                    "DELETE FROM transactions WHERE supplier_name = ?",
                    (supplier_name,),
                )
        except sqlite3.Error as exc:
            logger.error("Could not delete transactions of supplier %r: %s", supplier_name, exc)
            raise PersistenceError(f"Could not delete transactions of supplier {supplier_name!r}") from exc
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------
    def list_expenses(self) -> list[Expense]:
        return self._select("expenses", _row_to_expense)

    def get_expense(self, record_id: str) -> Optional[Expense]:
        return self._select_one("expenses", record_id, _row_to_expense)

    def add_expense(self, expense: Expense) -> Expense:
        return self._insert("expenses", EXPENSE_COLUMNS, expense)

    def update_expense(self, expense: Expense) -> bool:
        return self._update("expenses", EXPENSE_COLUMNS, expense)

    def delete_expense(self, record_id: str) -> bool:
        return self._delete("expenses", record_id)

    # ------------------------------------------------------------------
    # Supplier payments
    # ------------------------------------------------------------------
    def list_payments(self) -> list[SupplierPayment]:
        return self._select("payments", _row_to_payment)

    def get_payment(self, record_id: str) -> Optional[SupplierPayment]:
        return self._select_one("payments", record_id, _row_to_payment)

    def add_payment(self, payment: SupplierPayment) -> SupplierPayment:
        return self._insert("payments", PAYMENT_COLUMNS, payment)

    def update_payment(self, payment: SupplierPayment) -> bool:
        return self._update("payments", PAYMENT_COLUMNS, payment)

    def delete_payment(self, record_id: str) -> bool:
        return self._delete("payments", record_id)

    # ------------------------------------------------------------------
    # Balance transfers
    # ------------------------------------------------------------------
    def list_transfers(self) -> list[BalanceTransfer]:
        return self._select("transfers", _row_to_transfer)

    def get_transfer(self, record_id: str) -> Optional[BalanceTransfer]:
        return self._select_one("transfers", record_id, _row_to_transfer)

    def add_transfer(self, transfer: BalanceTransfer) -> BalanceTransfer:
        return self._insert("transfers", TRANSFER_COLUMNS, transfer)

    def update_transfer(self, transfer: BalanceTransfer) -> bool:
        return self._update("transfers", TRANSFER_COLUMNS, transfer)

    def delete_transfer(self, record_id: str) -> bool:
        return self._delete("transfers", record_id)

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------
    def _select(self, table: str, factory: Callable[[sqlite3.Row], Record]) -> list[Record]:
        """Return every row of ``table``, newest first."""

        try:
            with self._lock:
                rows = self._connection.execute(
                    f"SELECT * FROM {table} ORDER BY date DESC, id DESC"
                ).fetchall()
        except sqlite3.Error as exc:
            logger.error("Could not read %s: %s", table, exc)
            raise PersistenceError(f"Could not read {table}") from exc
        return [factory(row) for row in rows]

    def _select_one(
        self,
        table: str,
        record_id: str,
        factory: Callable[[sqlite3.Row], Record],
    ) -> Optional[Record]:
        try:
            with self._lock:
                row = self._connection.execute(
                    f"SELECT * FROM {table} WHERE id = ?",
                    (record_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.error("Could not read %s/%s: %s", table, record_id, exc)
            raise PersistenceError(f"Could not read {table}/{record_id}") from exc
        if row is None:
            return None
        return factory(row)

    def _insert(self, table: str, columns: Sequence[str], record: Record) -> Record:
        if not record.id:
            record = replace(record, id=self.new_id())
        placeholders = ", ".join(f":{column}" for column in columns)
        try:
            with self._lock, self._connection:
                self._connection.execute(
                    f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                    _record_to_params(record, columns),
                )
        except sqlite3.Error as exc:
            logger.error("Could not insert into %s: %s", table, exc)
            raise PersistenceError(f"Could not save record in {table}") from exc
        return record

    def _update(self, table: str, columns: Sequence[str], record: Record) -> bool:
        assignments = ", ".join(f"{column} = :{column}" for column in columns if column != "id")
        try:
            with self._lock, self._connection:
                cursor = self._connection.execute(
                    f"UPDATE {table} SET {assignments} WHERE id = :id",
                    _record_to_params(record, columns),
                )
        except sqlite3.Error as exc:
            logger.error("Could not update %s/%s: %s", table, record.id, exc)
            raise PersistenceError(f"Could not update {table}/{record.id}") from exc
        return cursor.rowcount > 0

    def _delete(self, table: str, record_id: str) -> bool:
        try:
            with self._lock, self._connection:
                cursor = self._connection.execute(
                    f"DELETE FROM {table} WHERE id = ?",
                    (record_id,),
                )
        except sqlite3.Error as exc:
            logger.error("Could not delete %s/%s: %s", table, record_id, exc)
            raise PersistenceError(f"Could not delete {table}/{record_id}") from exc
        return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

def _record_to_params(record: Record, columns: Iterable[str]) -> dict[str, object]:
    params: dict[str, object] = {}
    for column in columns:
        value = getattr(record, column)
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, (PaymentMethod, PaymentClassification, TransferAccount)):
            value = value.value
        params[column] = value
    return params


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        date=_parse_date(row["date"]),
        execution_date=_parse_date(row["execution_date"]),
        due_date=_parse_date(row["due_date"]),
        supplier_name=row["supplier_name"],
        governorate=row["governorate"] or "",
        city=row["city"] or "",
        description=row["description"] or "",
        product_type=row["product_type"] or "",
        category=row["category"],
        variety=row["variety"],
        quantity=row["quantity"],
        purchase_price=row["purchase_price"],
        total_purchase_price=row["total_purchase_price"],
        selling_price=row["selling_price"],
        total_selling_price=row["total_selling_price"],
        taxes=row["taxes"],
        profit=row["profit"],
        amount_paid_to_factory=row["amount_paid_to_factory"],
        amount_received_from_supplier=row["amount_received_from_supplier"],
    )


def _row_to_expense(row: sqlite3.Row) -> Expense:
    return Expense(
        id=row["id"],
        date=_parse_date(row["date"]),
        description=row["description"],
        amount=row["amount"],
        payment_order=row["payment_order"],
        supplier_name=row["supplier_name"] or None,
    )


def _row_to_payment(row: sqlite3.Row) -> SupplierPayment:
    return SupplierPayment(
        id=row["id"],
        date=_parse_date(row["date"]),
        supplier_name=row["supplier_name"],
        amount=row["amount"],
        method=PaymentMethod(row["method"] or PaymentMethod.CASH.value),
        # Older records carry no classification; they are sales-balance payments.
        classification=PaymentClassification(
            row["classification"] or PaymentClassification.SALES_BALANCE_PAYMENT.value
        ),
        reason=row["reason"] or "",
        responsible_person=row["responsible_person"] or "",
        source_bank=row["source_bank"],
        destination_bank=row["destination_bank"],
        document_url=row["document_url"],
        document_path=row["document_path"],
    )


def _row_to_transfer(row: sqlite3.Row) -> BalanceTransfer:
    return BalanceTransfer(
        id=row["id"],
        date=_parse_date(row["date"]),
        amount=row["amount"],
        from_supplier=row["from_supplier"],
        to_supplier=row["to_supplier"],
        from_account=TransferAccount(row["from_account"] or TransferAccount.SALES_BALANCE.value),
        to_account=TransferAccount(row["to_account"] or TransferAccount.SALES_BALANCE.value),
        reason=row["reason"] or "",
    )


def _parse_date(value: object) -> Optional[date]:
    if value is None:
        return None
    stringified = str(value).strip()
    if not stringified:
        return None
    parsed = date_parser.isoparse(stringified)
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed
