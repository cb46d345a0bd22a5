"""FastAPI application exposing the ledger_book backend."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Annotated, Literal, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import exporters
from .analysis_service import PerformanceAnalyzer
from .config import load_config
from .database import PersistenceError, SQLiteRepository
from .ftp_relay import INVALID_ARGUMENT, UNAUTHENTICATED, FtpRelay, RelayError
from .ledger import BalanceSnapshot, FactoryReport, SalesBalanceReport, SupplierStatement
from .reports import ALL_GOVERNORATES, ProfitReport, ReportFilter
from .schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ExpenseIn,
    FtpRelayRequest,
    FtpRelayResponse,
    PaymentIn,
    TransactionIn,
    TransferIn,
)
from .services import LedgerService, RecordNotFoundError

logger = logging.getLogger(__name__)

PERSISTENCE_ERROR_MESSAGE = "لم نتمكن من حفظ البيانات أو تحميلها. يرجى المحاولة مرة أخرى."
RELAY_STATUS = {UNAUTHENTICATED: 401, INVALID_ARGUMENT: 400}


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Initialise shared services once and reuse them across requests."""

    config = load_config()
    repository = SQLiteRepository(config.database_file)
    repository.initialise_schema()

    application.state.config = config
    application.state.repository = repository
    application.state.ledger = LedgerService(repository)
    application.state.analyzer = PerformanceAnalyzer(config)
    application.state.relay = FtpRelay(config)
    logger.info("ledger_book backend started with database %s", config.database_file)

    yield

    repository.close()


app = FastAPI(lifespan=lifespan, title="ledger_book backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handling ------------------------------------------------------------

@app.exception_handler(RecordNotFoundError)
async def record_not_found(_: Request, exc: RecordNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_failed(_: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Persistence error: %s", exc)
    return JSONResponse(status_code=503, content={"detail": PERSISTENCE_ERROR_MESSAGE})


# Dependency injection ------------------------------------------------------

def get_ledger_service(request: Request) -> LedgerService:
    service: LedgerService = request.app.state.ledger
    return service


def get_analyzer(request: Request) -> PerformanceAnalyzer:
    analyzer: PerformanceAnalyzer = request.app.state.analyzer
    return analyzer


def get_relay(request: Request) -> FtpRelay:
    relay: FtpRelay = request.app.state.relay
    return relay


Ledger = Annotated[LedgerService, Depends(get_ledger_service)]


# Routes --------------------------------------------------------------------


@app.get("/health")
def health_check() -> dict[str, str]:
    """Return a basic heartbeat payload for monitoring purposes."""

    return {"status": "ok"}


# Transactions --------------------------------------------------------------

@app.get("/transactions")
def list_transactions(
    ledger: Ledger,
    search: Annotated[Optional[str], Query(max_length=200)] = None,
    on_date: Optional[date] = None,
) -> dict[str, object]:
    transactions = ledger.list_transactions(search, on_date)
    return {"transactions": jsonable_encoder(transactions), "count": len(transactions)}


@app.post("/transactions", status_code=201)
def create_transaction(payload: TransactionIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.create_transaction(payload))


@app.get("/transactions/{record_id}")
def get_transaction(record_id: str, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.get_transaction(record_id))


@app.put("/transactions/{record_id}")
def update_transaction(record_id: str, payload: TransactionIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.update_transaction(record_id, payload))


@app.delete("/transactions/{record_id}", status_code=204)
def delete_transaction(record_id: str, ledger: Ledger) -> Response:
    ledger.delete_transaction(record_id)
    return Response(status_code=204)


# Expenses ------------------------------------------------------------------

@app.get("/expenses")
def list_expenses(ledger: Ledger) -> dict[str, object]:
    return {"expenses": jsonable_encoder(ledger.list_expenses()), **ledger.expense_totals()}


@app.post("/expenses", status_code=201)
def create_expense(payload: ExpenseIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.create_expense(payload))


@app.get("/expenses/{record_id}")
def get_expense(record_id: str, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.get_expense(record_id))


@app.put("/expenses/{record_id}")
def update_expense(record_id: str, payload: ExpenseIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.update_expense(record_id, payload))


@app.delete("/expenses/{record_id}", status_code=204)
def delete_expense(record_id: str, ledger: Ledger) -> Response:
    ledger.delete_expense(record_id)
    return Response(status_code=204)


# Supplier payments ---------------------------------------------------------

@app.get("/payments")
def list_payments(ledger: Ledger) -> dict[str, object]:
    return {"payments": jsonable_encoder(ledger.list_payments()), **ledger.payment_totals()}


@app.post("/payments", status_code=201)
def create_payment(payload: PaymentIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.create_payment(payload))


@app.get("/payments/{record_id}")
def get_payment(record_id: str, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.get_payment(record_id))


@app.put("/payments/{record_id}")
def update_payment(record_id: str, payload: PaymentIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.update_payment(record_id, payload))


@app.delete("/payments/{record_id}", status_code=204)
def delete_payment(record_id: str, ledger: Ledger) -> Response:
    ledger.delete_payment(record_id)
    return Response(status_code=204)


# Balance transfers ---------------------------------------------------------

@app.get("/transfers")
def list_transfers(ledger: Ledger) -> dict[str, object]:
    return {"transfers": jsonable_encoder(ledger.list_transfers()), **ledger.transfer_totals()}


@app.post("/transfers", status_code=201)
def create_transfer(payload: TransferIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.create_transfer(payload))


@app.get("/transfers/{record_id}")
def get_transfer(record_id: str, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.get_transfer(record_id))


@app.put("/transfers/{record_id}")
def update_transfer(record_id: str, payload: TransferIn, ledger: Ledger) -> dict[str, object]:
    return jsonable_encoder(ledger.update_transfer(record_id, payload))


@app.delete("/transfers/{record_id}")
def delete_transfer(record_id: str, ledger: Ledger) -> dict[str, object]:
    deletion = ledger.delete_transfer(record_id)
    return {
        "deleted": deletion.transfer.id,
        "linked_expense_remains": deletion.linked_expense_remains,
    }


# Suppliers -----------------------------------------------------------------

@app.get("/suppliers")
def list_suppliers(ledger: Ledger) -> dict[str, object]:
    return {"suppliers": ledger.supplier_names()}


@app.delete("/suppliers/{supplier_name}")
def delete_supplier(supplier_name: str, ledger: Ledger) -> dict[str, object]:
    deleted = ledger.delete_supplier(supplier_name)
    return {"supplier_name": supplier_name, "deleted_transactions": deleted}


@app.get("/suppliers/{supplier_name}/statement")
def supplier_statement(supplier_name: str, ledger: Ledger) -> dict[str, object]:
    return _statement_payload(ledger.supplier_statement(supplier_name))


@app.get("/suppliers/{supplier_name}/sales-balance")
def supplier_sales_balance(supplier_name: str, ledger: Ledger) -> dict[str, object]:
    return _sales_balance_payload(ledger.sales_balance_report(supplier_name))


# Reports -------------------------------------------------------------------

@app.get("/reports/suppliers")
def suppliers_report(ledger: Ledger) -> dict[str, object]:
    summaries = ledger.supplier_summaries()
    return {
        "suppliers": jsonable_encoder(summaries),
        "total_suppliers": len(summaries),
        "total_factory_balance": sum(s.factory_balance for s in summaries),
    }


@app.get("/reports/factory")
def factory_report(ledger: Ledger) -> dict[str, object]:
    return _factory_payload(ledger.factory_report())


@app.get("/reports/profit")
def profit_report(
    ledger: Ledger,
    governorate: str = ALL_GOVERNORATES,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    group_by: Literal["location", "month"] = "location",
) -> dict[str, object]:
    report_filter = ReportFilter(governorate=governorate, date_from=date_from, date_to=date_to)
    return _profit_payload(ledger.profit_report(report_filter, group_by))


@app.get("/reports/dashboard")
def dashboard(
    ledger: Ledger,
    search: Annotated[Optional[str], Query(max_length=200)] = None,
    on_date: Optional[date] = None,
) -> dict[str, object]:
    return ledger.dashboard(search, on_date)


@app.get("/export/transactions.csv")
def export_transactions(ledger: Ledger) -> Response:
    content = exporters.transactions_csv(ledger.snapshot())
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
    )


# External services ---------------------------------------------------------

@app.post("/analysis/performance")
def analyse_performance(
    payload: AnalysisRequest,
    analyzer: Annotated[PerformanceAnalyzer, Depends(get_analyzer)],
) -> AnalysisResponse:
    result = analyzer.analyse(payload)
    if not result.ok:
        return JSONResponse(status_code=500, content={"analysis": result.analysis})
    return AnalysisResponse(analysis=result.analysis)


@app.post("/relay/ftp")
def relay_ftp(
    payload: FtpRelayRequest,
    relay: Annotated[FtpRelay, Depends(get_relay)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> FtpRelayResponse:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    try:
        relay.authenticate(token)
        result = relay.relay(payload.file_url, payload.remote_path, payload.credentials)
    except RelayError as exc:
        status = RELAY_STATUS.get(exc.code, 502)
        raise HTTPException(
            status_code=status,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    return FtpRelayResponse(success=result.success, message=result.message, path=result.path)


# Payload builders ------------------------------------------------------------

def _entry_payload(entry: BalanceSnapshot) -> dict[str, object]:
    return {
        "kind": entry.event.kind.value,
        "id": entry.event.id,
        "date": entry.event.date.isoformat(),
        "record": jsonable_encoder(entry.event.record),
        "sales_balance": entry.sales_balance,
        "factory_balance": entry.factory_balance,
        "cash_flow_balance": entry.cash_flow_balance,
    }


def _statement_payload(statement: SupplierStatement) -> dict[str, object]:
    return {
        "supplier_name": statement.supplier_name,
        "error": statement.error,
        "timeline": [_entry_payload(entry) for entry in statement.entries],
        "transactions": [_entry_payload(entry) for entry in statement.transaction_rows()],
        "balances": {
            "sales": statement.sales_balance,
            "factory": statement.factory_balance,
            "cash_flow": statement.cash_flow_balance,
        },
        "totals": {
            "purchases": statement.total_purchases,
            "sales": statement.total_sales,
            "paid_to_factory": statement.total_paid_to_factory,
            "received_from_supplier": statement.total_received_from_supplier,
            "transaction_count": statement.transaction_count,
        },
        "tons": {
            "purchased": statement.tons_purchased,
            "sold": statement.tons_sold,
            "remaining": statement.tons_remaining,
            "by_category": _tons_payload(statement.by_category),
            "by_variety": _tons_payload(statement.by_variety),
        },
        "profit": statement.profit.as_dict(),
        "transfers": jsonable_encoder(statement.transfers),
        "expenses": jsonable_encoder(statement.expenses),
    }


def _tons_payload(breakdown) -> dict[str, dict[str, float]]:
    return {
        key: {"purchased": tons.purchased, "sold": tons.sold, "remaining": tons.remaining}
        for key, tons in breakdown.items()
    }


def _sales_balance_payload(report: SalesBalanceReport) -> dict[str, object]:
    return {
        "supplier_name": report.supplier_name,
        "error": report.error,
        "rows": [_entry_payload(entry) for entry in report.rows],
        "total_sales": report.total_sales,
        "total_received_from_supplier": report.total_received_from_supplier,
        "final_sales_balance": report.final_sales_balance,
    }


def _factory_payload(report: FactoryReport) -> dict[str, object]:
    return {"suppliers": jsonable_encoder(report.rows), "total_balance": report.total_balance}


def _profit_payload(report: ProfitReport) -> dict[str, object]:
    return {
        "group_by": report.group_by,
        "grouping_header": report.grouping_header,
        "rows": [row.as_dict() for row in report.rows],
        "totals": report.totals.as_dict(),
    }
