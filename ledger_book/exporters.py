"""CSV export of the transaction ledger."""
from __future__ import annotations

from datetime import date
from typing import Optional

import pandas as pd

from .ledger import BalanceSnapshot, EventKind, running_balances
from .models import LedgerSnapshot

# Column headers as the spreadsheet users expect them.
EXPORT_COLUMNS = [
    ("serial", "مسلسل"),
    ("date", "التاريخ"),
    ("execution_date", "تاريخ التنفيذ"),
    ("due_date", "تاريخ الاستحقاق"),
    ("supplier_name", "اسم المورد"),
    ("governorate", "المحافظة"),
    ("city", "المركز"),
    ("description", "الوصف"),
    ("product_type", "النوع"),
    ("quantity", "الكمية"),
    ("purchase_price", "سعر الشراء"),
    ("total_purchase_price", "إجمالي الشراء"),
    ("selling_price", "سعر البيع"),
    ("total_selling_price", "إجمالي البيع"),
    ("taxes", "الضرائب"),
    ("profit", "الربح"),
    ("amount_paid_to_factory", "المدفوع للمصنع"),
    ("amount_received_from_supplier", "المستلم من المورد"),
    ("sales_balance", "رصيد المبيعات"),
    ("cash_flow_balance", "الرصيد النقدي"),
]


def transaction_balances(snapshot: LedgerSnapshot) -> dict[str, BalanceSnapshot]:
    """Map each transaction id to the supplier balances right after it."""

    balances: dict[str, BalanceSnapshot] = {}
    for name in {t.supplier_name for t in snapshot.transactions}:
        for entry in running_balances(name, snapshot.transactions, snapshot.payments, snapshot.transfers):
            if entry.event.kind is EventKind.TRANSACTION:
                balances[entry.event.id] = entry
    return balances


def transactions_frame(snapshot: LedgerSnapshot) -> pd.DataFrame:
    balances = transaction_balances(snapshot)
    ordered = sorted(snapshot.transactions, key=lambda t: (t.date, t.id), reverse=True)
    rows = []
    for index, transaction in enumerate(ordered):
        entry = balances[transaction.id]
        rows.append(
            {
                "serial": len(ordered) - index,
                "date": _iso(transaction.date),
                "execution_date": _iso(transaction.execution_date),
                "due_date": _iso(transaction.due_date),
                "supplier_name": transaction.supplier_name,
                "governorate": transaction.governorate,
                "city": transaction.city,
                "description": transaction.description,
                "product_type": transaction.product_type,
                "quantity": transaction.quantity,
                "purchase_price": transaction.purchase_price,
                "total_purchase_price": transaction.total_purchase_price,
                "selling_price": transaction.selling_price,
                "total_selling_price": transaction.total_selling_price,
                "taxes": transaction.taxes,
                "profit": transaction.profit,
                "amount_paid_to_factory": transaction.amount_paid_to_factory,
                "amount_received_from_supplier": transaction.amount_received_from_supplier,
                "sales_balance": entry.sales_balance,
                "cash_flow_balance": entry.cash_flow_balance,
            }
        )
    frame = pd.DataFrame(rows, columns=[key for key, _ in EXPORT_COLUMNS])
    return frame.rename(columns=dict(EXPORT_COLUMNS))


def transactions_csv(snapshot: LedgerSnapshot) -> str:
    """Render the ledger as CSV text with a BOM so spreadsheet apps detect UTF-8."""

    return "\ufeff" + transactions_frame(snapshot).to_csv(index=False)


def _iso(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.isoformat()
