from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.engine import Engine

from finance_tracker.category_report import Category
from finance_tracker.report_engine import CategoryType, Expense, Income, Transaction

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), unique=True, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("type", String(20), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    UniqueConstraint("user_id", "name", "type", name="uq_categories_user_name_type"),
)

expenses = Table(
    "expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("date", Date, nullable=False),
    Column("description", String(500)),
)

incomes = Table(
    "incomes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("date", Date, nullable=False),
    Column("description", String(500)),
)


class SqlTransactionStore:
    """Read side of the ledger tables, one query per call."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def user_exists(self, user_id: int) -> bool:
        with self.engine.begin() as conn:
            row = conn.execute(select(users.c.id).where(users.c.id == user_id)).first()
        return row is not None

    def list_expenses(self, user_id: int, start_date: date, end_date: date) -> List[Expense]:
        rows = self._fetch(expenses, user_id, start_date, end_date)
        return [
            Expense(
                id=row["id"],
                amount=_coerce_decimal(row["amount"]),
                date=row["date"],
                category_id=row["category_id"],
                category_name=row["category_name"],
                category_type=row["category_type"],
                description=row["description"],
            )
            for row in rows
        ]

    def list_incomes(self, user_id: int, start_date: date, end_date: date) -> List[Income]:
        rows = self._fetch(incomes, user_id, start_date, end_date)
        return [
            Income(
                id=row["id"],
                amount=_coerce_decimal(row["amount"]),
                date=row["date"],
                category_id=row["category_id"],
                category_name=row["category_name"],
                category_type=row["category_type"],
                description=row["description"],
            )
            for row in rows
        ]

    def list_categories(self, user_id: int, category_type: str) -> List[Category]:
        normalized = CategoryType.validate(category_type)
        stmt = (
            select(categories.c.id, categories.c.name, categories.c.type)
            .where(categories.c.user_id == user_id, categories.c.type == normalized)
            .order_by(categories.c.name.asc(), categories.c.id.asc())
        )
        with self.engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [Category(id=row["id"], name=row["name"], type=row["type"]) for row in rows]

    def list_transactions_for_type(self, user_id: int, category_type: str) -> List[Transaction]:
        normalized = CategoryType.validate(category_type)
        if normalized == "EXPENSE":
            return list(self.list_expenses(user_id, date.min, date.max))
        return list(self.list_incomes(user_id, date.min, date.max))

    def _fetch(self, table: Table, user_id: int, start_date: date, end_date: date):
        stmt = (
            select(
                table.c.id,
                table.c.amount,
                table.c.date,
                table.c.category_id,
                table.c.description,
                categories.c.name.label("category_name"),
                categories.c.type.label("category_type"),
            )
            .select_from(table.join(categories, table.c.category_id == categories.c.id))
            .where(
                table.c.user_id == user_id,
                table.c.date >= start_date,
                table.c.date <= end_date,
            )
            .order_by(table.c.date.asc(), table.c.id.asc())
        )
        with self.engine.begin() as conn:
            return conn.execute(stmt).mappings().all()


def _coerce_decimal(value: Decimal | float | int | str) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))
