import unittest
from datetime import date
from decimal import Decimal

from finance_tracker.report_engine import Expense, Income, compute_monthly_report
from finance_tracker.store import SqlTransactionStore
from finance_tracker.tests.ledger_fixtures import build_engine, seed_march_ledger


class SqlTransactionStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = build_engine()
        seed_march_ledger(self.engine)
        self.store = SqlTransactionStore(self.engine)

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_lists_expenses_within_inclusive_range(self) -> None:
        rows = self.store.list_expenses(1, date(2024, 3, 1), date(2024, 3, 31))

        self.assertEqual(
            rows,
            [
                Expense(
                    id=2,
                    amount=Decimal("100"),
                    date=date(2024, 3, 1),
                    category_id=1,
                    category_name="Food",
                    category_type="EXPENSE",
                ),
                Expense(
                    id=1,
                    amount=Decimal("200"),
                    date=date(2024, 3, 2),
                    category_id=2,
                    category_name="Transport",
                    category_type="EXPENSE",
                ),
            ],
        )

    def test_lists_incomes_with_category_attached(self) -> None:
        rows = self.store.list_incomes(1, date(2024, 3, 1), date(2024, 3, 31))

        self.assertEqual(len(rows), 1)
        self.assertIsInstance(rows[0], Income)
        self.assertEqual(rows[0].kind, "income")
        self.assertEqual(rows[0].category_name, "Salary")
        self.assertEqual(rows[0].category_type, "INCOME")

    def test_range_bounds_are_inclusive(self) -> None:
        rows = self.store.list_expenses(1, date(2024, 2, 29), date(2024, 4, 1))

        self.assertEqual([row.id for row in rows], [3, 2, 1, 4])

    def test_carries_description(self) -> None:
        rows = self.store.list_expenses(1, date(2024, 4, 1), date(2024, 4, 30))

        self.assertEqual([row.description for row in rows], ["Team lunch"])

    def test_user_exists(self) -> None:
        self.assertTrue(self.store.user_exists(1))
        self.assertFalse(self.store.user_exists(77))

    def test_lists_categories_by_type(self) -> None:
        rows = self.store.list_categories(1, "expense")

        self.assertEqual([row.name for row in rows], ["Food", "Gifts", "Transport"])
        self.assertTrue(all(row.type == "EXPENSE" for row in rows))

    def test_list_categories_rejects_unknown_type(self) -> None:
        with self.assertRaises(ValueError):
            self.store.list_categories(1, "transfer")

    def test_lists_all_time_transactions_for_type(self) -> None:
        rows = self.store.list_transactions_for_type(1, "INCOME")

        self.assertEqual([row.date for row in rows], [date(2024, 3, 1), date(2024, 4, 1)])

    def test_monthly_report_from_database(self) -> None:
        report = compute_monthly_report(self.store, 1, 2024, 3)

        self.assertEqual(report.total_expenses, Decimal("300"))
        self.assertEqual(report.total_incomes, Decimal("500"))
        self.assertEqual(
            [(item.name, item.total) for item in report.category_totals.expenses],
            [("Food", Decimal("100")), ("Transport", Decimal("200"))],
        )
        self.assertEqual(report.daily_balances[0].balance, Decimal("400"))
        self.assertEqual(report.daily_balances[1].balance, Decimal("200"))
        self.assertEqual(len(report.daily_balances), 31)


if __name__ == "__main__":
    unittest.main()
