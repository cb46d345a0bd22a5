"""Pytest configuration and fixtures."""

from dataclasses import replace
from datetime import date
from uuid import uuid4

import pytest

from ledger_book.database import SQLiteRepository
from ledger_book.models import (
    BalanceTransfer,
    Expense,
    PaymentClassification,
    SupplierPayment,
    Transaction,
    TransferAccount,
)
from ledger_book.services import LedgerService


class InMemoryRepository:
    """Dict-backed stand-in for :class:`SQLiteRepository`."""

    def __init__(self):
        self.tables = {"transactions": {}, "expenses": {}, "payments": {}, "transfers": {}}

    def _list(self, table):
        return sorted(self.tables[table].values(), key=lambda r: (r.date, r.id), reverse=True)

    def _add(self, table, record):
        if not record.id:
            record = replace(record, id=uuid4().hex)
        self.tables[table][record.id] = record
        return record

    def _update(self, table, record):
        if record.id not in self.tables[table]:
            return False
        self.tables[table][record.id] = record
        return True

    def _delete(self, table, record_id):
        return self.tables[table].pop(record_id, None) is not None

    def list_transactions(self):
        return self._list("transactions")

    def get_transaction(self, record_id):
        return self.tables["transactions"].get(record_id)

    def add_transaction(self, transaction):
        return self._add("transactions", transaction)

    def update_transaction(self, transaction):
        return self._update("transactions", transaction)

    def delete_transaction(self, record_id):
        return self._delete("transactions", record_id)

    def delete_supplier_transactions(self, supplier_name):
        doomed = [k for k, t in self.tables["transactions"].items() if t.supplier_name == supplier_name]
        for key in doomed:
            del self.tables["transactions"][key]
        return len(doomed)

    def list_expenses(self):
        return self._list("expenses")

    def get_expense(self, record_id):
        return self.tables["expenses"].get(record_id)

    def add_expense(self, expense):
        return self._add("expenses", expense)

    def update_expense(self, expense):
        return self._update("expenses", expense)

    def delete_expense(self, record_id):
        return self._delete("expenses", record_id)

    def list_payments(self):
        return self._list("payments")

    def get_payment(self, record_id):
        return self.tables["payments"].get(record_id)

    def add_payment(self, payment):
        return self._add("payments", payment)

    def update_payment(self, payment):
        return self._update("payments", payment)

    def delete_payment(self, record_id):
        return self._delete("payments", record_id)

    def list_transfers(self):
        return self._list("transfers")

    def get_transfer(self, record_id):
        return self.tables["transfers"].get(record_id)

    def add_transfer(self, transfer):
        return self._add("transfers", transfer)

    def update_transfer(self, transfer):
        return self._update("transfers", transfer)

    def delete_transfer(self, record_id):
        return self._delete("transfers", record_id)


@pytest.fixture
def make_transaction():
    """Build a transaction with consistent totals; ``day`` is a day of January 2024."""

    def factory(
        id="t1",
        day=1,
        supplier="A",
        quantity=10,
        purchase_price=100,
        selling_price=0,
        taxes=0,
        paid=0,
        received=0,
        **extra,
    ):
        return Transaction.build(
            id=id,
            date=date(2024, 1, day),
            supplier_name=supplier,
            quantity=quantity,
            purchase_price=purchase_price,
            selling_price=selling_price,
            taxes=taxes,
            amount_paid_to_factory=paid,
            amount_received_from_supplier=received,
            **extra,
        )

    return factory


@pytest.fixture
def make_payment():
    def factory(
        id="p1",
        day=1,
        supplier="A",
        amount=100,
        classification=PaymentClassification.SALES_BALANCE_PAYMENT,
    ):
        return SupplierPayment(
            id=id,
            date=date(2024, 1, day),
            supplier_name=supplier,
            amount=amount,
            classification=classification,
            reason="settlement",
            responsible_person="Omar",
        )

    return factory


@pytest.fixture
def make_transfer():
    def factory(
        id="x1",
        day=1,
        amount=200,
        from_supplier="A",
        to_supplier="B",
        from_account=TransferAccount.SALES_BALANCE,
        to_account=TransferAccount.SALES_BALANCE,
    ):
        return BalanceTransfer(
            id=id,
            date=date(2024, 1, day),
            amount=amount,
            from_supplier=from_supplier,
            to_supplier=to_supplier,
            from_account=from_account,
            to_account=to_account,
            reason="rebalance",
        )

    return factory


@pytest.fixture
def make_expense():
    def factory(id="e1", day=1, amount=50, supplier=None, description="transport"):
        return Expense(
            id=id,
            date=date(2024, 1, day),
            description=description,
            amount=amount,
            supplier_name=supplier,
        )

    return factory


@pytest.fixture
def memory_repository():
    return InMemoryRepository()


@pytest.fixture
def ledger_service(memory_repository):
    return LedgerService(memory_repository)


@pytest.fixture
def sqlite_repository(tmp_path):
    repository = SQLiteRepository(tmp_path / "ledger.db")
    repository.initialise_schema()
    yield repository
    repository.close()


@pytest.fixture
def api_client(tmp_path, monkeypatch):
    """TestClient bound to a fresh database file."""
    from fastapi.testclient import TestClient

    from ledger_book.api import app

    monkeypatch.setenv("LEDGER_BOOK_DB_FILE", str(tmp_path / "api.db"))
    monkeypatch.setenv("LEDGER_BOOK_API_TOKEN", "relay-token")
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def app_config(tmp_path):
    from ledger_book.config import AppConfig

    return AppConfig(
        project_root=tmp_path,
        database_file=tmp_path / "ledger.db",
        google_api_key="test-key",
        gemini_model="gemini-test",
        gemini_endpoint="https://gemini.example/v1beta",
        api_token="relay-token",
        relay_max_bytes=1024,
        log_level="DEBUG",
    )
