from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from clinic_finance.models.financial_transaction import FinancialTransaction, TransactionStatus
from clinic_finance.schemas.financial_transaction import (
    FinancialTransactionRead,
    MonthGroup,
    TransactionSummaryResponse,
)


def _pending(transactions: Iterable[FinancialTransaction]) -> list[FinancialTransaction]:
    return [t for t in transactions if t.status == TransactionStatus.PENDING.value]


def total_pending(transactions: Iterable[FinancialTransaction]) -> Decimal:
    return sum((Decimal(str(t.amount or 0)) for t in _pending(transactions)), Decimal("0"))


def due_within(transactions: Iterable[FinancialTransaction], today: date, days: int = 7) -> Decimal:
    """Pending amount due between today and today + days, both inclusive."""
    until = today + timedelta(days=days)
    return sum(
        (Decimal(str(t.amount or 0)) for t in _pending(transactions) if today <= t.due_date <= until),
        Decimal("0"),
    )


def group_by_month(transactions: Iterable[FinancialTransaction]) -> dict[str, list[FinancialTransaction]]:
    groups: dict[str, list[FinancialTransaction]] = {}
    for t in sorted(transactions, key=lambda x: x.due_date):
        groups.setdefault(f"{t.due_date.year:04d}-{t.due_date.month:02d}", []).append(t)
    return groups


def build_summary(
    transaction_type: str,
    transactions: list[FinancialTransaction],
    today: date,
) -> TransactionSummaryResponse:
    months = [
        MonthGroup(
            month=month,
            total=sum((Decimal(str(t.amount or 0)) for t in rows), Decimal("0")),
            transactions=[FinancialTransactionRead.model_validate(t) for t in rows],
        )
        for month, rows in group_by_month(transactions).items()
    ]
    return TransactionSummaryResponse(
        type=transaction_type,
        total_pending=total_pending(transactions),
        pending_count=len(_pending(transactions)),
        due_this_week=due_within(transactions, today),
        months=months,
    )
