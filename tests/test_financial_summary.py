import unittest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from clinic_finance.services.financial_summary import due_within, group_by_month, total_pending


def _tx(amount, due, status="pending"):
    return SimpleNamespace(amount=Decimal(amount), due_date=due, status=status)


class FinancialSummaryTests(unittest.TestCase):
    def setUp(self):
        self.rows = [
            _tx("100.00", date(2025, 3, 3)),
            _tx("50.00", date(2025, 3, 10)),
            _tx("70.00", date(2025, 3, 11)),
            _tx("999.00", date(2025, 3, 4), status="paid"),
            _tx("10.00", date(2025, 2, 28), status="cancelled"),
            _tx("25.00", date(2025, 4, 1)),
        ]

    def test_total_pending_ignores_paid_and_cancelled(self):
        self.assertEqual(total_pending(self.rows), Decimal("245.00"))

    def test_due_within_a_week_is_inclusive(self):
        self.assertEqual(due_within(self.rows, date(2025, 3, 3)), Decimal("150.00"))

    def test_overdue_rows_are_not_due_this_week(self):
        self.assertEqual(due_within(self.rows, date(2025, 3, 5)), Decimal("120.00"))

    def test_group_by_month_sorted(self):
        groups = group_by_month(self.rows)
        self.assertEqual(list(groups), ["2025-02", "2025-03", "2025-04"])
        self.assertEqual([t.due_date.day for t in groups["2025-03"]], [3, 4, 10, 11])


if __name__ == "__main__":
    unittest.main()
