"""Request and response schemas for the HTTP API.

Every payload is validated at the boundary. Records only reach the service
layer once the request model accepted them.
"""
from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import PaymentClassification, PaymentMethod, TransferAccount


def _strip(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip()


class TransactionIn(BaseModel):
    date: dt.date
    execution_date: dt.date
    due_date: dt.date
    supplier_name: str = Field(..., min_length=1, max_length=200)
    governorate: str = Field(..., min_length=1, max_length=100)
    city: str = Field("", max_length=100)
    description: str = Field(..., min_length=1, max_length=200)
    product_type: str = Field(..., min_length=1, max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    variety: Optional[str] = Field(None, max_length=100)
    quantity: float = Field(..., ge=1)
    purchase_price: float = Field(..., ge=0)
    selling_price: float = Field(0, ge=0)
    taxes: float = Field(0, ge=0)
    amount_paid_to_factory: float = Field(0, ge=0)
    amount_received_from_supplier: float = Field(0, ge=0)

    @field_validator("supplier_name", "governorate", "description", "product_type", mode="before")
    @classmethod
    def strip_required(cls, value):
        return _strip(value) if isinstance(value, str) else value

    @field_validator("city", mode="before")
    @classmethod
    def blank_city(cls, value):
        return _strip(value) if isinstance(value, str) else (value or "")


class ExpenseIn(BaseModel):
    date: dt.date
    description: str = Field(..., min_length=1, max_length=500)
    amount: float = Field(..., gt=0)
    payment_order: Optional[str] = Field(None, max_length=100)
    supplier_name: Optional[str] = Field(None, max_length=200)

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value):
        return _strip(value) if isinstance(value, str) else value

    @field_validator("supplier_name", "payment_order", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        value = _strip(value) if isinstance(value, str) else value
        return value or None


class PaymentIn(BaseModel):
    date: dt.date
    supplier_name: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.CASH
    classification: PaymentClassification = PaymentClassification.SALES_BALANCE_PAYMENT
    reason: str = Field(..., min_length=1, max_length=500)
    responsible_person: str = Field(..., min_length=1, max_length=200)
    source_bank: Optional[str] = Field(None, max_length=200)
    destination_bank: Optional[str] = Field(None, max_length=200)
    document_url: Optional[str] = Field(None, max_length=2000)
    document_path: Optional[str] = Field(None, max_length=1000)

    @field_validator("supplier_name", "reason", "responsible_person", mode="before")
    @classmethod
    def strip_required(cls, value):
        return _strip(value) if isinstance(value, str) else value

    @field_validator("source_bank", "destination_bank", "document_url", "document_path", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        value = _strip(value) if isinstance(value, str) else value
        return value or None


class TransferIn(BaseModel):
    date: dt.date
    amount: float = Field(..., gt=0)
    from_supplier: str = Field(..., min_length=1, max_length=200)
    to_supplier: str = Field(..., min_length=1, max_length=200)
    from_account: TransferAccount = TransferAccount.SALES_BALANCE
    to_account: TransferAccount = TransferAccount.SALES_BALANCE
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("from_supplier", "to_supplier", "reason", mode="before")
    @classmethod
    def strip_required(cls, value):
        return _strip(value) if isinstance(value, str) else value

    @field_validator("to_account")
    @classmethod
    def to_account_is_a_balance(cls, value: TransferAccount) -> TransferAccount:
        if value is TransferAccount.PROFIT_EXPENSE:
            raise ValueError("profit_expense can only be used as the source account")
        return value

    @model_validator(mode="after")
    def distinct_suppliers(self) -> "TransferIn":
        if self.from_supplier == self.to_supplier:
            raise ValueError("cannot transfer a balance to the same supplier")
        return self


class AnalysisTransaction(BaseModel):
    date: str
    supplier_name: str
    governorate: str = ""
    city: str = ""
    total_selling_price: float
    profit: float


class AnalysisRequest(BaseModel):
    transactions: list[AnalysisTransaction]
    total_profit: float
    total_expenses: float


class AnalysisResponse(BaseModel):
    analysis: str


class FtpCredentials(BaseModel):
    host: str = Field(..., min_length=1)
    port: int = Field(21, ge=1, le=65535)
    user: str = Field(..., min_length=1)
    password: str = ""
    secure: bool = False


class FtpRelayRequest(BaseModel):
    file_url: Optional[str] = None
    remote_path: Optional[str] = None
    credentials: Optional[FtpCredentials] = None


class FtpRelayResponse(BaseModel):
    success: bool
    message: str
    path: str


__all__ = [
    "AnalysisRequest",
    "AnalysisResponse",
    "AnalysisTransaction",
    "ExpenseIn",
    "FtpCredentials",
    "FtpRelayRequest",
    "FtpRelayResponse",
    "PaymentIn",
    "TransactionIn",
    "TransferIn",
]
