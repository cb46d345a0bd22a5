"""Domain models used by the ledger_book backend.

The classes defined here are lightweight data containers that do not know
anything about persistence or transport concerns. Every entity references its
supplier by name; there is no separate supplier record.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class PaymentMethod(str, Enum):
    CASH = "نقدي"
    BANK = "بنكي"


class PaymentClassification(str, Enum):
    """Purpose of a supplier payment.

    The classification decides which running balance a payment moves and in
    which direction (see :mod:`ledger_book.ledger`).
    """

    SALES_BALANCE_PAYMENT = "دفعة من رصيد المبيعات"
    PROFIT_WITHDRAWAL = "سحب أرباح للمورد"
    FACTORY_REPAYMENT = "سداد للمصنع عن المورد"
    SETTLEMENT_REFUND = "استعادة مبلغ كتسوية"
    SETTLEMENT_WITHDRAWAL = "سحب مبلغ كتسوية"


class TransferAccount(str, Enum):
    SALES_BALANCE = "sales_balance"
    FACTORY_BALANCE = "factory_balance"
    PROFIT_EXPENSE = "profit_expense"


@dataclass(slots=True)
class Transaction:
    """One purchase, and optionally its matching sale, for a supplier.

    ``total_purchase_price``, ``total_selling_price`` and ``profit`` are
    derived values. Use :meth:`build` to create a record with consistent
    totals; the plain constructor trusts whatever it is given so rows read
    back from storage round-trip untouched.
    """

    id: str
    date: date
    supplier_name: str
    quantity: float
    purchase_price: float
    total_purchase_price: float = 0.0
    selling_price: float = 0.0
    total_selling_price: float = 0.0
    taxes: float = 0.0
    profit: float = 0.0
    amount_paid_to_factory: float = 0.0
    amount_received_from_supplier: float = 0.0
    execution_date: Optional[date] = None
    due_date: Optional[date] = None
    governorate: str = ""
    city: str = ""
    description: str = ""
    product_type: str = ""
    category: Optional[str] = None
    variety: Optional[str] = None

    @classmethod
    def build(cls, **values: object) -> "Transaction":
        """Create a transaction and compute its derived totals."""

        transaction = cls(**values)
        transaction.recompute_totals()
        return transaction

    @property
    def is_sold(self) -> bool:
        return self.total_selling_price > 0

    def recompute_totals(self) -> None:
        self.total_purchase_price = self.quantity * self.purchase_price
        if self.selling_price > 0:
            self.total_selling_price = self.quantity * self.selling_price
        else:
            self.total_selling_price = 0.0
        if self.is_sold:
            self.profit = self.total_selling_price - self.total_purchase_price - self.taxes
        else:
            self.profit = 0.0


@dataclass(slots=True)
class Expense:
    """A standalone cost, optionally charged against one supplier's profit."""

    id: str
    date: date
    description: str
    amount: float
    payment_order: Optional[str] = None
    supplier_name: Optional[str] = None


@dataclass(slots=True)
class SupplierPayment:
    """Cash moving to or from a supplier."""

    id: str
    date: date
    supplier_name: str
    amount: float
    method: PaymentMethod = PaymentMethod.CASH
    classification: PaymentClassification = PaymentClassification.SALES_BALANCE_PAYMENT
    reason: str = ""
    responsible_person: str = ""
    source_bank: Optional[str] = None
    destination_bank: Optional[str] = None
    document_url: Optional[str] = None
    document_path: Optional[str] = None

    @property
    def is_factory_payment(self) -> bool:
        return self.classification is PaymentClassification.FACTORY_REPAYMENT


@dataclass(slots=True)
class BalanceTransfer:
    """Value moved from one supplier's virtual account to another's."""

    id: str
    date: date
    amount: float
    from_supplier: str
    to_supplier: str
    from_account: TransferAccount = TransferAccount.SALES_BALANCE
    to_account: TransferAccount = TransferAccount.SALES_BALANCE
    reason: str = ""

    def involves(self, supplier_name: str) -> bool:
        return supplier_name in (self.from_supplier, self.to_supplier)


@dataclass(slots=True)
class LedgerSnapshot:
    """All four collections as fetched at one point in time."""

    transactions: list[Transaction] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    payments: list[SupplierPayment] = field(default_factory=list)
    transfers: list[BalanceTransfer] = field(default_factory=list)


__all__ = [
    "BalanceTransfer",
    "Expense",
    "LedgerSnapshot",
    "PaymentClassification",
    "PaymentMethod",
    "SupplierPayment",
    "Transaction",
    "TransferAccount",
]
