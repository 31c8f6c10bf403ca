from __future__ import annotations

import unittest
import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from support import make_session_factory

from fastapi import HTTPException

from clinic_finance.models.financial_transaction import FinancialTransaction
from clinic_finance.services.cash_register import (
    check_register,
    close_register,
    compute_balance,
    daily_report,
    open_register,
    register_status,
)

DAY = date(2025, 6, 2)


def _row(type, amount, method, status="paid", category="services"):
    return SimpleNamespace(type=type, amount=Decimal(amount), payment_method=method, status=status, category=category)


class ComputeBalanceTests(unittest.TestCase):
    def test_balance_and_expected_cash(self):
        rows = [
            _row("income", "100", "cash"),
            _row("income", "50", "pix"),
            _row("expense", "30", "cash"),
            _row("income", "999", "cash", status="cancelled"),
            _row("income", "200", "cash", category="cash_opening"),
        ]
        result = compute_balance(Decimal("200"), rows)
        self.assertEqual(result.total_receipts, Decimal("150"))
        self.assertEqual(result.total_expenses, Decimal("30"))
        self.assertEqual(result.balance, Decimal("320"))
        self.assertEqual(result.expected_cash, Decimal("270"))
        self.assertEqual(result.receipts_by_method, {"cash": Decimal("100.00"), "pix": Decimal("50.00")})

    def test_empty_register(self):
        result = compute_balance(None, [])
        self.assertEqual(result.balance, Decimal("0"))
        self.assertEqual(result.receipts_by_method, {})


class CashRegisterServiceTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = make_session_factory()
        self.db = self.Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _paid(self, type, amount, method, day=DAY):
        self.db.add(
            FinancialTransaction(
                id=uuid.uuid4(),
                type=type,
                category="services" if type == "income" else "supplies",
                description=f"{type} {method}",
                amount=Decimal(amount),
                payment_method=method,
                status="paid",
                due_date=day,
                payment_date=day,
            )
        )
        self.db.commit()

    def test_open_then_close_reconciles_counted_cash(self):
        open_register(self.db, operator="maria", initial_amount=Decimal("200"), cash_date=DAY)
        self._paid("income", "100", "cash")
        self._paid("income", "50", "pix")
        self._paid("expense", "30", "cash")

        status = register_status(self.db, today=DAY)
        self.assertTrue(status.is_open)
        self.assertEqual(status.opened_by, "maria")
        self.assertEqual(status.balance.balance, Decimal("320"))
        self.assertEqual(status.balance.expected_cash, Decimal("270"))

        opening, closing = close_register(self.db, operator="joana", final_amount=Decimal("260"), cash_date=DAY)
        self.assertIsNotNone(opening.closed_at)
        self.assertEqual(opening.closed_by, "joana")
        self.assertEqual(closing.type, "expense")
        self.assertEqual(closing.category, "cash_closing")
        self.assertEqual(closing.amount, Decimal("320"))
        self.assertEqual(closing.expected_amount, Decimal("270"))
        self.assertEqual(closing.difference, Decimal("-10"))
        self.assertEqual(closing.opened_by, "maria")
        self.assertFalse(register_status(self.db, today=DAY).is_open)

    def test_second_open_on_same_day_conflicts(self):
        open_register(self.db, operator="maria", initial_amount=Decimal("50"), cash_date=DAY)
        with self.assertRaises(HTTPException) as ctx:
            open_register(self.db, operator="maria", initial_amount=Decimal("50"), cash_date=DAY)
        self.assertEqual(ctx.exception.status_code, 409)

    def test_register_can_reopen_after_close(self):
        open_register(self.db, operator="maria", initial_amount=Decimal("50"), cash_date=DAY)
        close_register(self.db, operator="maria", final_amount=Decimal("50"))
        row = open_register(self.db, operator="maria", initial_amount=Decimal("10"), cash_date=DAY)
        self.assertEqual(row.category, "cash_opening")
        self.assertTrue(register_status(self.db, today=DAY).is_open)

    def test_future_date_cannot_be_opened(self):
        with self.assertRaises(HTTPException) as ctx:
            open_register(self.db, operator="maria", initial_amount=Decimal("50"), cash_date=date(2025, 6, 3), today=DAY)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertFalse(register_status(self.db, today=DAY).is_open)

    def test_close_without_open_register_is_not_found(self):
        with self.assertRaises(HTTPException) as ctx:
            close_register(self.db, operator="maria", final_amount=Decimal("0"))
        self.assertEqual(ctx.exception.status_code, 404)

    def test_previous_day_left_open_is_reported(self):
        yesterday = date(2025, 6, 1)
        open_register(self.db, operator="maria", initial_amount=Decimal("80"), cash_date=yesterday)
        status = check_register(self.db, today=DAY)
        self.assertFalse(status.is_open)
        self.assertEqual(status.previous_open_date, yesterday)
        self.assertEqual(status.balance.initial_amount, Decimal("80"))

        open_register(self.db, operator="maria", initial_amount=Decimal("0"), cash_date=DAY)
        status = register_status(self.db, today=DAY)
        self.assertTrue(status.is_open)
        self.assertEqual(status.previous_open_date, yesterday)

    def test_daily_report(self):
        open_register(self.db, operator="maria", initial_amount=Decimal("200"), cash_date=DAY)
        self._paid("income", "100", "cash")
        self._paid("income", "40", "debit_card", day=date(2025, 6, 3))
        close_register(self.db, operator="maria", final_amount=Decimal("300"), cash_date=DAY)

        report = daily_report(self.db, DAY)
        self.assertEqual(report.opened_by, "maria")
        self.assertEqual(report.initial_amount, Decimal("200"))
        self.assertEqual(report.final_amount, Decimal("300"))
        self.assertEqual(report.difference, Decimal("0"))
        self.assertEqual(report.balance.balance, Decimal("300"))
        self.assertEqual(len(report.transactions), 1)
        self.assertIsNotNone(report.closed_at)

    def test_daily_report_for_day_without_register(self):
        report = daily_report(self.db, DAY)
        self.assertIsNone(report.opened_by)
        self.assertEqual(report.transactions, [])


if __name__ == "__main__":
    unittest.main()
