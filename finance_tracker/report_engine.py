from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import MAXYEAR, MINYEAR, date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Protocol, Tuple, Union

from loguru import logger

ZERO = Decimal("0")


class CategoryType:
    values = {"EXPENSE", "INCOME"}

    @classmethod
    def validate(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in cls.values:
            raise ValueError("Invalid category type.")
        return normalized


@dataclass(frozen=True)
class Expense:
    id: int
    amount: Decimal
    date: date
    category_id: int
    category_name: str
    category_type: str = "EXPENSE"
    description: Optional[str] = None
    kind: str = field(default="expense", init=False)


@dataclass(frozen=True)
class Income:
    id: int
    amount: Decimal
    date: date
    category_id: int
    category_name: str
    category_type: str = "INCOME"
    description: Optional[str] = None
    kind: str = field(default="income", init=False)


Transaction = Union[Expense, Income]


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    total: Decimal


@dataclass(frozen=True)
class DailyBalance:
    date: date
    balance: Decimal


@dataclass(frozen=True)
class CategoryTotals:
    expenses: List[CategoryTotal]
    incomes: List[CategoryTotal]


@dataclass(frozen=True)
class MonthlyReport:
    year: int
    month: int
    total_expenses: Decimal
    total_incomes: Decimal
    category_totals: CategoryTotals
    daily_balances: List[DailyBalance]


class TransactionStore(Protocol):
    def list_expenses(
        self, user_id: int, start_date: date, end_date: date
    ) -> List[Expense]: ...

    def list_incomes(
        self, user_id: int, start_date: date, end_date: date
    ) -> List[Income]: ...


def resolve_period(year: int, month: int) -> Tuple[date, date]:
    """Return the first and last calendar day of ``month`` in ``year``."""
    if not MINYEAR <= year <= MAXYEAR:
        raise ValueError(f"Year must be between {MINYEAR} and {MAXYEAR}.")
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12.")
    last_day = monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def group_by_category(transactions: Iterable[Transaction]) -> List[CategoryTotal]:
    totals: dict[int, CategoryTotal] = {}
    for txn in transactions:
        current = totals.get(txn.category_id)
        if current is None:
            current = CategoryTotal(name=txn.category_name, total=ZERO)
        totals[txn.category_id] = CategoryTotal(
            name=current.name,
            total=current.total + _coerce_amount(txn.amount),
        )
    return list(totals.values())


def reconstruct_daily_balances(
    expenses: Iterable[Expense],
    incomes: Iterable[Income],
    start_date: date,
    end_date: date,
) -> List[DailyBalance]:
    """Build one balance entry per day of ``[start_date, end_date]``.

    The running total is written to a day only when that day has a
    transaction; days without activity stay at zero and do not carry the
    previous balance forward.
    """
    if start_date > end_date:
        raise ValueError("start_date must be on or before end_date.")

    balances: dict[date, Decimal] = {}
    current_date = start_date
    while current_date <= end_date:
        balances[current_date] = ZERO
        current_date += timedelta(days=1)

    merged: List[Transaction] = sorted(
        [*expenses, *incomes], key=lambda txn: txn.date
    )

    running_balance = ZERO
    for txn in merged:
        running_balance += _signed_amount(txn)
        if txn.date in balances:
            balances[txn.date] = running_balance

    return [
        DailyBalance(date=day, balance=balance)
        for day, balance in balances.items()
    ]


def assemble_report(
    year: int,
    month: int,
    expenses: List[Expense],
    incomes: List[Income],
    expense_totals: List[CategoryTotal],
    income_totals: List[CategoryTotal],
    daily_balances: List[DailyBalance],
) -> MonthlyReport:
    return MonthlyReport(
        year=year,
        month=month,
        total_expenses=sum_amounts(expenses),
        total_incomes=sum_amounts(incomes),
        category_totals=CategoryTotals(
            expenses=expense_totals,
            incomes=income_totals,
        ),
        daily_balances=daily_balances,
    )


def compute_monthly_report(
    store: TransactionStore, user_id: int, year: int, month: int
) -> MonthlyReport:
    start_date, end_date = resolve_period(year, month)
    expenses = store.list_expenses(user_id, start_date, end_date)
    incomes = store.list_incomes(user_id, start_date, end_date)

    report = assemble_report(
        year,
        month,
        expenses,
        incomes,
        expense_totals=group_by_category(expenses),
        income_totals=group_by_category(incomes),
        daily_balances=reconstruct_daily_balances(
            expenses, incomes, start_date, end_date
        ),
    )
    logger.debug(
        "Computed monthly report",
        user_id=user_id,
        period=f"{year:04d}-{month:02d}",
        expense_count=len(expenses),
        income_count=len(incomes),
    )
    return report


def _signed_amount(txn: Transaction) -> Decimal:
    if isinstance(txn, Expense):
        return -_coerce_amount(txn.amount)
    if isinstance(txn, Income):
        return _coerce_amount(txn.amount)
    raise TypeError(f"Unsupported transaction: {txn!r}")


def sum_amounts(transactions: Iterable[Transaction]) -> Decimal:
    total = ZERO
    for txn in transactions:
        total += _coerce_amount(txn.amount)
    return total


def _coerce_amount(amount: Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
