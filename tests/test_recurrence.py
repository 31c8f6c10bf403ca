from __future__ import annotations

import unittest
from datetime import date, timedelta

from clinic_finance.services.recurrence import (
    FALLBACK_OCCURRENCES,
    RecurrenceError,
    add_months,
    next_due_date,
    occurrence_dates,
)


class NextDueDateTests(unittest.TestCase):
    def test_weekly_is_always_seven_days(self):
        for d in (date(2024, 2, 26), date(2023, 12, 29), date(2024, 12, 31), date(2025, 3, 1)):
            self.assertEqual(next_due_date(d, "weekly") - d, timedelta(days=7))

    def test_monthly_day_31_clamps_february_then_reverts(self):
        feb_leap = next_due_date(date(2024, 1, 31), "monthly", 31)
        self.assertEqual(feb_leap, date(2024, 2, 29))
        self.assertEqual(next_due_date(feb_leap, "monthly", 31), date(2024, 3, 31))

        feb = next_due_date(date(2023, 1, 31), "monthly", 31)
        self.assertEqual(feb, date(2023, 2, 28))
        self.assertEqual(next_due_date(feb, "monthly", 31), date(2023, 3, 31))

    def test_monthly_without_anchor_uses_current_day(self):
        self.assertEqual(next_due_date(date(2023, 2, 28), "monthly"), date(2023, 3, 28))

    def test_monthly_crosses_year(self):
        self.assertEqual(next_due_date(date(2024, 12, 15), "monthly", 15), date(2025, 1, 15))

    def test_yearly_leap_day_anchor(self):
        d = date(2024, 2, 29)
        expected = [date(2025, 2, 28), date(2026, 2, 28), date(2027, 2, 28), date(2028, 2, 29)]
        for exp in expected:
            d = next_due_date(d, "yearly", 29)
            self.assertEqual(d, exp)

    def test_stops_after_end_date(self):
        self.assertIsNone(next_due_date(date(2024, 1, 10), "monthly", 10, end_date=date(2024, 2, 9)))
        self.assertEqual(
            next_due_date(date(2024, 1, 10), "monthly", 10, end_date=date(2024, 2, 10)),
            date(2024, 2, 10),
        )

    def test_non_recurring_and_unknown_types_raise(self):
        with self.assertRaises(RecurrenceError):
            next_due_date(date(2024, 1, 1), "none")
        with self.assertRaises(RecurrenceError):
            next_due_date(date(2024, 1, 1), "daily")

    def test_stepping_past_the_last_calendar_date_raises(self):
        with self.assertRaises(RecurrenceError):
            next_due_date(date(9999, 12, 28), "weekly")
        with self.assertRaises(RecurrenceError):
            next_due_date(date(9999, 12, 15), "monthly", 15)
        with self.assertRaises(RecurrenceError):
            next_due_date(date(9999, 3, 1), "yearly", 1)

    def test_invalid_anchor_day_raises(self):
        with self.assertRaises(RecurrenceError):
            next_due_date(date(2024, 1, 1), "monthly", 32)


class OccurrenceDatesTests(unittest.TestCase):
    def test_monthly_count_three_from_january_31(self):
        dates = list(occurrence_dates(date(2024, 1, 31), "monthly", count=3))
        self.assertEqual(dates, [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)])

    def test_count_wins_over_later_end_date(self):
        dates = list(occurrence_dates(date(2024, 1, 1), "weekly", count=3, end_date=date(2024, 12, 31)))
        self.assertEqual(len(dates), 3)

    def test_end_date_truncates_count(self):
        dates = list(occurrence_dates(date(2024, 1, 31), "monthly", count=12, end_date=date(2024, 4, 15)))
        self.assertEqual(dates[-1], date(2024, 3, 31))
        self.assertEqual(len(dates), 3)

    def test_unbounded_series_falls_back_to_cap(self):
        dates = list(occurrence_dates(date(2024, 1, 15), "monthly"))
        self.assertEqual(len(dates), FALLBACK_OCCURRENCES)
        self.assertEqual(dates[-1], date(2028, 12, 15))

    def test_none_yields_only_first_date(self):
        self.assertEqual(list(occurrence_dates(date(2024, 5, 5), "none", count=5)), [date(2024, 5, 5)])

    def test_end_date_before_first_raises(self):
        with self.assertRaises(RecurrenceError):
            list(occurrence_dates(date(2024, 5, 5), "weekly", end_date=date(2024, 5, 1)))


class AddMonthsTests(unittest.TestCase):
    def test_clamps_to_month_end(self):
        self.assertEqual(add_months(date(2023, 1, 31), 1), date(2023, 2, 28))
        self.assertEqual(add_months(date(2023, 10, 31), 2), date(2023, 12, 31))
        self.assertEqual(add_months(date(2023, 11, 30), 3), date(2024, 2, 29))

    def test_explicit_anchor_day(self):
        self.assertEqual(add_months(date(2024, 2, 29), 1, 31), date(2024, 3, 31))


if __name__ == "__main__":
    unittest.main()
