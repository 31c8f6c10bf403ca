"""
Cash register opening, closing and reconciliation.

Openings and closings are FinancialTransaction rows under the reserved cash_opening and
cash_closing categories. The register balance is the opening amount plus paid receipts
minus paid expenses since the opening; the expected cash in the drawer only counts the
transactions paid in cash.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import date, datetime, timezone
from decimal import Decimal

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_finance.models.financial_transaction import (
    CASH_CLOSING,
    CASH_OPENING,
    CASH_REGISTER_CATEGORIES,
    FinancialTransaction,
    TransactionStatus,
    TransactionType,
)
from clinic_finance.schemas.cash_register import DailyReport, RegisterBalance, RegisterStatus
from clinic_finance.schemas.financial_transaction import FinancialTransactionRead

logger = logging.getLogger("clinic_finance.cash_register")

CASH_METHOD = "cash"
ZERO = Decimal("0")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def compute_balance(initial_amount, transactions: Iterable[FinancialTransaction]) -> RegisterBalance:
    """
    Reconcile a register from its opening amount and the transactions paid while it was open.
    Cancelled rows and the register's own opening/closing rows are ignored.
    """
    initial = _money(initial_amount)
    receipts = ZERO
    expenses = ZERO
    cash_receipts = ZERO
    cash_expenses = ZERO
    by_method: dict[str, Decimal] = {}
    for t in transactions:
        if t.status == TransactionStatus.CANCELLED.value or t.category in CASH_REGISTER_CATEGORIES:
            continue
        amount = _money(t.amount)
        if t.type == TransactionType.INCOME.value:
            receipts += amount
            by_method[t.payment_method] = by_method.get(t.payment_method, ZERO) + amount
            if t.payment_method == CASH_METHOD:
                cash_receipts += amount
        elif t.type == TransactionType.EXPENSE.value:
            expenses += amount
            if t.payment_method == CASH_METHOD:
                cash_expenses += amount
    return RegisterBalance(
        initial_amount=initial,
        total_receipts=receipts,
        total_expenses=expenses,
        balance=initial + receipts - expenses,
        expected_cash=initial + cash_receipts - cash_expenses,
        receipts_by_method=by_method,
    )


def _unclosed_openings(db: Session) -> list[FinancialTransaction]:
    q = (
        select(FinancialTransaction)
        .where(
            FinancialTransaction.category == CASH_OPENING,
            FinancialTransaction.closed_at.is_(None),
            FinancialTransaction.status != TransactionStatus.CANCELLED.value,
        )
        .order_by(FinancialTransaction.payment_date.desc(), FinancialTransaction.created_at.desc())
    )
    return list(db.execute(q).scalars().all())


def _paid_since(db: Session, start: date, end: date | None = None) -> list[FinancialTransaction]:
    q = select(FinancialTransaction).where(
        FinancialTransaction.status == TransactionStatus.PAID.value,
        FinancialTransaction.payment_date >= start,
        FinancialTransaction.category.not_in(CASH_REGISTER_CATEGORIES),
    )
    if end is not None:
        q = q.where(FinancialTransaction.payment_date <= end)
    return list(db.execute(q.order_by(FinancialTransaction.payment_date, FinancialTransaction.created_at)).scalars().all())


def register_balance(db: Session, opening: FinancialTransaction) -> RegisterBalance:
    opened_on = opening.payment_date or opening.due_date
    return compute_balance(opening.initial_amount or opening.amount, _paid_since(db, opened_on))


def register_status(db: Session, today: date | None = None) -> RegisterStatus:
    today = today or date.today()
    openings = _unclosed_openings(db)
    todays = next((o for o in openings if o.payment_date == today), None)
    earlier = next((o for o in openings if o.payment_date and o.payment_date < today), None)
    current = todays or earlier
    if current is None:
        return RegisterStatus(today=today, is_open=False)
    return RegisterStatus(
        today=today,
        is_open=todays is not None,
        opened_on=current.payment_date,
        opened_by=current.opened_by,
        previous_open_date=earlier.payment_date if earlier is not None else None,
        balance=register_balance(db, current),
    )


def open_register(
    db: Session,
    *,
    operator: str,
    initial_amount: Decimal,
    cash_date: date | None = None,
    notes: str | None = None,
    today: date | None = None,
) -> FinancialTransaction:
    today = today or date.today()
    cash_date = cash_date or today
    if cash_date > today:
        raise HTTPException(status_code=400, detail="Cannot open a cash register for a future date")
    if any(o.payment_date == cash_date for o in _unclosed_openings(db)):
        raise HTTPException(status_code=409, detail=f"Cash register for {cash_date.isoformat()} is already open")
    row = FinancialTransaction(
        id=uuid.uuid4(),
        type=TransactionType.INCOME.value,
        category=CASH_OPENING,
        description="Cash register opening",
        amount=_money(initial_amount),
        initial_amount=_money(initial_amount),
        payment_method=CASH_METHOD,
        status=TransactionStatus.PAID.value,
        due_date=cash_date,
        payment_date=cash_date,
        notes=(notes or "").strip() or None,
        opened_by=operator,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("register_opened date=%s operator=%s initial=%s", cash_date, operator, row.amount)
    return row


def close_register(
    db: Session,
    *,
    operator: str,
    final_amount: Decimal,
    cash_date: date | None = None,
    notes: str | None = None,
) -> tuple[FinancialTransaction, FinancialTransaction]:
    """Close the open register for cash_date (default: the most recent open one)."""
    openings = _unclosed_openings(db)
    if cash_date is not None:
        openings = [o for o in openings if o.payment_date == cash_date]
    if not openings:
        raise HTTPException(status_code=404, detail="No open cash register found")
    opening = openings[0]
    opened_on = opening.payment_date or opening.due_date
    summary = register_balance(db, opening)
    counted = _money(final_amount)
    now = datetime.now(timezone.utc)

    closing = FinancialTransaction(
        id=uuid.uuid4(),
        type=TransactionType.EXPENSE.value,
        category=CASH_CLOSING,
        description="Cash register closing",
        amount=summary.balance,
        payment_method=CASH_METHOD,
        status=TransactionStatus.PAID.value,
        due_date=opened_on,
        payment_date=opened_on,
        notes=(notes or "").strip() or None,
        opened_by=opening.opened_by,
        closed_by=operator,
        closed_at=now,
        initial_amount=summary.initial_amount,
        final_amount=counted,
        expected_amount=summary.expected_cash,
        difference=counted - summary.expected_cash,
    )
    opening.closed_at = now
    opening.closed_by = operator
    db.add(closing)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("register_close_failed date=%s", opened_on)
        raise HTTPException(status_code=500, detail="Could not close cash register") from e
    db.refresh(opening)
    db.refresh(closing)
    logger.info(
        "register_closed date=%s operator=%s expected=%s counted=%s difference=%s",
        opened_on,
        operator,
        summary.expected_cash,
        counted,
        closing.difference,
    )
    return opening, closing


def daily_report(db: Session, day: date) -> DailyReport:
    rows = (
        db.execute(
            select(FinancialTransaction)
            .where(
                FinancialTransaction.category.in_(CASH_REGISTER_CATEGORIES),
                FinancialTransaction.payment_date == day,
            )
            .order_by(FinancialTransaction.created_at.desc())
        )
        .scalars()
        .all()
    )
    opening = next((r for r in rows if r.category == CASH_OPENING), None)
    closing = next((r for r in rows if r.category == CASH_CLOSING), None)
    transactions = _paid_since(db, day, day)
    initial = (opening.initial_amount or opening.amount) if opening is not None else ZERO
    return DailyReport(
        day=day,
        opened_by=opening.opened_by if opening is not None else None,
        opened_at=opening.payment_date if opening is not None else None,
        closed_at=closing.closed_at if closing is not None else None,
        initial_amount=_money(initial),
        final_amount=closing.final_amount if closing is not None else None,
        difference=closing.difference if closing is not None and closing.difference is not None else ZERO,
        balance=compute_balance(initial, transactions),
        transactions=[FinancialTransactionRead.model_validate(t) for t in transactions],
    )


def check_register(db: Session, today: date | None = None) -> RegisterStatus:
    """Periodic re-check: warn when a register from an earlier day is still open."""
    status = register_status(db, today)
    if status.previous_open_date is not None:
        logger.warning(
            "register_left_open date=%s operator=%s balance=%s",
            status.previous_open_date,
            status.opened_by,
            status.balance.balance,
        )
    return status
