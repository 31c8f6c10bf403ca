"""
Materialization of recurring financial transactions.

A series has no row of its own: it is the first occurrence (the root) plus every row whose
parent_transaction_id points at it. Batch series are written in full when the root is
created; auto-recurring series get one extra occurrence at creation and are then topped up
by the sweep, one occurrence at a time, until they reach the look-ahead horizon.
"""
from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import date

from fastapi import HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_finance.core.config import settings
from clinic_finance.models.financial_transaction import FinancialTransaction, TransactionStatus
from clinic_finance.models.supplier import Supplier
from clinic_finance.schemas.financial_transaction import FinancialTransactionCreate
from clinic_finance.services.recurrence import (
    RecurrenceError,
    RecurrenceType,
    add_months,
    next_due_date,
    occurrence_dates,
)

logger = logging.getLogger("clinic_finance.recurring")

# Copied from the root onto every generated occurrence.
INHERITED_FIELDS = (
    "type",
    "category",
    "description",
    "amount",
    "payment_method",
    "supplier_id",
    "client_name",
    "notes",
    "recurrence_type",
    "recurrence_count",
    "recurrence_end_date",
    "recurrence_day_of_month",
    "is_auto_recurring",
)


class GenerationMode(str, enum.Enum):
    SINGLE = "single"
    BATCH = "batch"
    AUTO = "auto"


@dataclass
class SweepResult:
    horizon: date
    series_checked: int = 0
    created: int = 0
    conflicts: int = 0


def resolve_generation_mode(recurrence_type: str, recurrence_count: int) -> GenerationMode:
    if RecurrenceType(recurrence_type) == RecurrenceType.NONE:
        return GenerationMode.SINGLE
    if recurrence_count > 0:
        return GenerationMode.BATCH
    return GenerationMode.AUTO


def series_limit(root: FinancialTransaction) -> int:
    """Maximum number of occurrences a series may hold, root included."""
    if root.recurrence_count and root.recurrence_count > 0:
        return root.recurrence_count
    return settings.recurrence_fallback_occurrences


def build_occurrence(root: FinancialTransaction, due: date) -> FinancialTransaction:
    row = FinancialTransaction(
        id=uuid.uuid4(),
        due_date=due,
        status=TransactionStatus.PENDING.value,
        payment_date=None,
        parent_transaction_id=root.id,
    )
    for field in INHERITED_FIELDS:
        setattr(row, field, getattr(root, field))
    return row


def _ensure_supplier(db: Session, supplier_id: uuid.UUID | None) -> None:
    if supplier_id is not None and db.get(Supplier, supplier_id) is None:
        raise HTTPException(status_code=400, detail="Supplier not found")


def create_transaction(
    db: Session,
    payload: FinancialTransactionCreate,
    *,
    today: date | None = None,
) -> FinancialTransaction:
    """
    Persist a transaction and, for recurring ones, the occurrences its policy asks for.
    The root and its generated occurrences are committed together.
    """
    today = today or date.today()
    _ensure_supplier(db, payload.supplier_id)
    mode = resolve_generation_mode(payload.recurrence_type, payload.recurrence_count)

    root = FinancialTransaction(
        id=uuid.uuid4(),
        type=payload.type,
        category=payload.category.strip().lower(),
        description=payload.description.strip(),
        amount=payload.amount,
        payment_method=payload.payment_method.strip().lower(),
        status=payload.status,
        due_date=payload.due_date,
        payment_date=today if payload.status == TransactionStatus.PAID.value else None,
        supplier_id=payload.supplier_id,
        client_name=(payload.client_name or "").strip() or None,
        notes=(payload.notes or "").strip() or None,
        recurrence_type=payload.recurrence_type,
        recurrence_count=payload.recurrence_count if mode == GenerationMode.BATCH else 0,
        recurrence_end_date=payload.recurrence_end_date if mode != GenerationMode.SINGLE else None,
        recurrence_day_of_month=payload.due_date.day if mode != GenerationMode.SINGLE else None,
        is_auto_recurring=mode == GenerationMode.AUTO,
    )

    generated: list[FinancialTransaction] = []
    if mode == GenerationMode.BATCH:
        dates = list(
            occurrence_dates(
                root.due_date,
                root.recurrence_type,
                count=root.recurrence_count,
                end_date=root.recurrence_end_date,
                day_of_month=root.recurrence_day_of_month,
            )
        )
        generated = [build_occurrence(root, d) for d in dates[1:]]
    elif mode == GenerationMode.AUTO:
        nxt = next_due_date(
            root.due_date, root.recurrence_type, root.recurrence_day_of_month, root.recurrence_end_date
        )
        if nxt is not None and series_limit(root) > 1:
            generated = [build_occurrence(root, nxt)]
    db.add(root)
    db.add_all(generated)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("series_create_failed mode=%s due_date=%s", mode.value, payload.due_date)
        raise HTTPException(status_code=500, detail="Could not save transaction") from e
    db.refresh(root)
    if mode != GenerationMode.SINGLE:
        logger.info(
            "series_created root=%s mode=%s type=%s occurrences=%s",
            root.id,
            mode.value,
            root.recurrence_type,
            1 + len(generated),
        )
    return root


def series_root(db: Session, row: FinancialTransaction) -> FinancialTransaction:
    if row.parent_transaction_id is None:
        return row
    root = db.get(FinancialTransaction, row.parent_transaction_id)
    return root or row


def list_series(db: Session, root: FinancialTransaction) -> list[FinancialTransaction]:
    q = (
        select(FinancialTransaction)
        .where(or_(FinancialTransaction.id == root.id, FinancialTransaction.parent_transaction_id == root.id))
        .order_by(FinancialTransaction.due_date)
    )
    return list(db.execute(q).scalars().all())


def _series_extent(db: Session, root: FinancialTransaction) -> tuple[int, date]:
    count, latest = db.execute(
        select(func.count(FinancialTransaction.id), func.max(FinancialTransaction.due_date)).where(
            or_(FinancialTransaction.id == root.id, FinancialTransaction.parent_transaction_id == root.id)
        )
    ).one()
    return int(count or 0), latest or root.due_date


def materialize_next(
    db: Session,
    root: FinancialTransaction,
    *,
    horizon: date | None = None,
) -> FinancialTransaction | None:
    """
    Add (without committing) the occurrence that follows the latest one of the series.
    Returns None when the series is exhausted or the next date lies beyond the horizon.
    """
    if RecurrenceType(root.recurrence_type) == RecurrenceType.NONE:
        return None
    count, latest = _series_extent(db, root)
    if count >= series_limit(root):
        return None
    nxt = next_due_date(latest, root.recurrence_type, root.recurrence_day_of_month, root.recurrence_end_date)
    if nxt is None or (horizon is not None and nxt > horizon):
        return None
    row = build_occurrence(root, nxt)
    db.add(row)
    db.flush()
    return row


def sweep_auto_recurring(
    db: Session,
    *,
    today: date | None = None,
    months_ahead: int | None = None,
) -> SweepResult:
    """
    Top up every auto-recurring series until its next occurrence would fall after
    today + months_ahead. Each occurrence is committed on its own; a unique-constraint
    violation means another sweep got there first, so that series is left alone.
    """
    today = today or date.today()
    months = settings.recurrence_months_ahead if months_ahead is None else months_ahead
    result = SweepResult(horizon=add_months(today, months))

    root_ids = (
        db.execute(
            select(FinancialTransaction.id).where(
                FinancialTransaction.is_auto_recurring.is_(True),
                FinancialTransaction.parent_transaction_id.is_(None),
                FinancialTransaction.recurrence_type != RecurrenceType.NONE.value,
            )
        )
        .scalars()
        .all()
    )
    for root_id in root_ids:
        root = db.get(FinancialTransaction, root_id)
        if root is None:
            continue
        result.series_checked += 1
        while True:
            try:
                row = materialize_next(db, root, horizon=result.horizon)
                if row is None:
                    break
                db.commit()
            except IntegrityError:
                db.rollback()
                result.conflicts += 1
                logger.warning("sweep_conflict root=%s", root_id)
                break
            except RecurrenceError as e:
                db.rollback()
                logger.warning("sweep_stopped root=%s reason=%s", root_id, e)
                break
            result.created += 1
            logger.info("sweep_created root=%s due_date=%s", root_id, row.due_date)

    logger.info(
        "sweep_done horizon=%s series=%s created=%s conflicts=%s",
        result.horizon,
        result.series_checked,
        result.created,
        result.conflicts,
    )
    return result
