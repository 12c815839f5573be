from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from finance_tracker.report_engine import Transaction, sum_amounts


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    type: str


@dataclass(frozen=True)
class CategoryReportEntry:
    category: Category
    total: Decimal
    transactions: List[Transaction]


def build_category_report(
    categories: Iterable[Category],
    transactions: Iterable[Transaction],
) -> List[CategoryReportEntry]:
    """All-time totals for each category, newest transactions first.

    Categories with no transactions are still listed with a zero total.
    """
    by_category: dict[int, List[Transaction]] = {}
    for txn in transactions:
        by_category.setdefault(txn.category_id, []).append(txn)

    report: List[CategoryReportEntry] = []
    for category in categories:
        items = sorted(
            by_category.get(category.id, []),
            key=lambda txn: (txn.date, txn.id),
            reverse=True,
        )
        report.append(
            CategoryReportEntry(
                category=category, total=sum_amounts(items), transactions=items
            )
        )
    return report
