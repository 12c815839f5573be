import os
import sys
import time
from datetime import date
from decimal import Decimal
from typing import Annotated

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from sqlalchemy import create_engine

from finance_tracker.category_report import CategoryReportEntry, build_category_report
from finance_tracker.report_engine import CategoryType, MonthlyReport, compute_monthly_report
from finance_tracker.store import SqlTransactionStore, metadata

app = FastAPI(title="Finance Tracker Reports")

frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

database_url = os.getenv("DATABASE_URL", "sqlite:///./finance_tracker.db")
connect_args = {}
if database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(database_url, connect_args=connect_args)


@app.on_event("startup")
def init_db() -> None:
    logger.remove()
    logger.add(sys.stderr, level=os.getenv("LOG_LEVEL", "INFO").upper())
    metadata.create_all(engine)
    logger.info("Database schema ready", database=engine.url.render_as_string(hide_password=True))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "{method} {path} failed", method=request.method, path=request.url.path
        )
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "{method} {path} -> {status_code} ({elapsed_ms:.1f} ms)",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        elapsed_ms=elapsed_ms,
    )
    return response


Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CategoryTotalResponse(CamelModel):
    name: str
    total: Money


class CategoryTotalsResponse(CamelModel):
    expenses: list[CategoryTotalResponse]
    incomes: list[CategoryTotalResponse]


class DailyBalanceResponse(CamelModel):
    date: date
    balance: Money


class MonthlyReportResponse(CamelModel):
    year: int
    month: int
    total_expenses: Money = Field(alias="totalExpenses")
    total_incomes: Money = Field(alias="totalIncomes")
    category_totals: CategoryTotalsResponse = Field(alias="categoryTotals")
    daily_balances: list[DailyBalanceResponse] = Field(alias="dailyBalances")


class CategoryResponse(CamelModel):
    id: int
    name: str
    type: str


class CategoryTransactionResponse(CamelModel):
    id: int
    amount: Money
    date: date
    kind: str
    category_id: int = Field(alias="categoryId")
    description: str | None = None


class CategoryReportResponse(CamelModel):
    category: CategoryResponse
    total: Money
    transactions: list[CategoryTransactionResponse]


def get_store() -> SqlTransactionStore:
    return SqlTransactionStore(engine)


def get_user_id(x_user_id: str | None, store: SqlTransactionStore) -> int:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity.")
    try:
        user_id = int(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid user identity.") from exc
    if not store.user_exists(user_id):
        raise HTTPException(status_code=404, detail="User not found.")
    return user_id


def to_monthly_report_response(report: MonthlyReport) -> MonthlyReportResponse:
    return MonthlyReportResponse(
        year=report.year,
        month=report.month,
        total_expenses=report.total_expenses,
        total_incomes=report.total_incomes,
        category_totals=CategoryTotalsResponse(
            expenses=[
                CategoryTotalResponse(name=item.name, total=item.total)
                for item in report.category_totals.expenses
            ],
            incomes=[
                CategoryTotalResponse(name=item.name, total=item.total)
                for item in report.category_totals.incomes
            ],
        ),
        daily_balances=[
            DailyBalanceResponse(date=item.date, balance=item.balance)
            for item in report.daily_balances
        ],
    )


def to_category_report_response(entry: CategoryReportEntry) -> CategoryReportResponse:
    return CategoryReportResponse(
        category=CategoryResponse(
            id=entry.category.id,
            name=entry.category.name,
            type=entry.category.type,
        ),
        total=entry.total,
        transactions=[
            CategoryTransactionResponse(
                id=txn.id,
                amount=txn.amount,
                date=txn.date,
                kind=txn.kind,
                category_id=txn.category_id,
                description=txn.description,
            )
            for txn in entry.transactions
        ],
    )


def monthly_report(
    year: int,
    month: int,
    x_user_id: str | None,
    store: SqlTransactionStore,
) -> MonthlyReportResponse:
    user_id = get_user_id(x_user_id, store)
    try:
        report = compute_monthly_report(store, user_id, year, month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return to_monthly_report_response(report)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/reports/monthly-totals", response_model=MonthlyReportResponse)
def monthly_totals(
    year: int = Query(...),
    month: int = Query(...),
    x_user_id: str | None = Header(None, alias="x-user-id"),
    store: SqlTransactionStore = Depends(get_store),
) -> MonthlyReportResponse:
    return monthly_report(year, month, x_user_id, store)


@app.get("/reports/expenses-by-category", response_model=MonthlyReportResponse)
def expenses_by_category(
    year: int = Query(...),
    month: int = Query(...),
    x_user_id: str | None = Header(None, alias="x-user-id"),
    store: SqlTransactionStore = Depends(get_store),
) -> MonthlyReportResponse:
    return monthly_report(year, month, x_user_id, store)


@app.get("/reports/balance-overview", response_model=MonthlyReportResponse)
def balance_overview(
    year: int = Query(...),
    month: int = Query(...),
    x_user_id: str | None = Header(None, alias="x-user-id"),
    store: SqlTransactionStore = Depends(get_store),
) -> MonthlyReportResponse:
    return monthly_report(year, month, x_user_id, store)


@app.get("/reports/categories", response_model=list[CategoryReportResponse])
def category_report(
    type: str = Query(...),
    x_user_id: str | None = Header(None, alias="x-user-id"),
    store: SqlTransactionStore = Depends(get_store),
) -> list[CategoryReportResponse]:
    user_id = get_user_id(x_user_id, store)
    try:
        category_type = CategoryType.validate(type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    entries = build_category_report(
        store.list_categories(user_id, category_type),
        store.list_transactions_for_type(user_id, category_type),
    )
    logger.debug(
        "Built category report",
        user_id=user_id,
        category_type=category_type,
        category_count=len(entries),
    )
    return [to_category_report_response(entry) for entry in entries]
