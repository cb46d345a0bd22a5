"""Profit and stock aggregation over a set of transactions.

Taxes and expenses are charged only against sold inventory: goods still in
stock are carried at their purchase value and contribute no profit until they
are sold.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import Expense, Transaction


@dataclass(slots=True)
class ProfitSummary:
    total_sales: float = 0.0
    total_purchases: float = 0.0
    remaining_stock_value: float = 0.0
    taxes_on_sold_items: float = 0.0
    expenses: float = 0.0
    count: int = 0

    @property
    def cost_of_goods_sold(self) -> float:
        return self.total_purchases - self.remaining_stock_value

    @property
    def total_profit(self) -> float:
        return (
            self.total_sales
            - self.cost_of_goods_sold
            - self.taxes_on_sold_items
            - self.expenses
        )

    @property
    def profit_percentage(self) -> float:
        if self.total_sales <= 0:
            return 0.0
        return self.total_profit / self.total_sales * 100

    def add(self, transaction: Transaction) -> None:
        self.total_sales += transaction.total_selling_price
        self.total_purchases += transaction.total_purchase_price
        self.count += 1
        if transaction.is_sold:
            self.taxes_on_sold_items += transaction.taxes
        else:
            self.remaining_stock_value += transaction.total_purchase_price

    def as_dict(self) -> dict[str, float]:
        return {
            "total_sales": self.total_sales,
            "total_purchases": self.total_purchases,
            "remaining_stock_value": self.remaining_stock_value,
            "cost_of_goods_sold": self.cost_of_goods_sold,
            "taxes_on_sold_items": self.taxes_on_sold_items,
            "expenses": self.expenses,
            "total_profit": self.total_profit,
            "profit_percentage": self.profit_percentage,
            "count": self.count,
        }


def summarise_profit(
    transactions: Iterable[Transaction],
    expenses: Iterable[Expense] = (),
) -> ProfitSummary:
    """Aggregate sales, stock and profit figures.

    ``expenses`` should already be narrowed to the ones attributable to the
    transactions at hand (a supplier's own expenses, or those inside a report's
    date range).
    """

    summary = ProfitSummary()
    for transaction in transactions:
        summary.add(transaction)
    summary.expenses = sum(expense.amount for expense in expenses)
    return summary
