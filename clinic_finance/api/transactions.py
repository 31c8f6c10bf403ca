from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_finance.db.session import get_db
from clinic_finance.models.financial_transaction import FinancialTransaction, TransactionStatus
from clinic_finance.models.supplier import Supplier
from clinic_finance.schemas.financial_transaction import (
    FinancialTransactionCreate,
    FinancialTransactionRead,
    FinancialTransactionUpdate,
    StatusChangeRequest,
    TransactionSummaryResponse,
)
from clinic_finance.services.financial_summary import build_summary
from clinic_finance.services.recurrence import RecurrenceType
from clinic_finance.services.recurring_transactions import create_transaction as create_with_recurrence

router = APIRouter(prefix="/transactions", tags=["transactions"])
logger = logging.getLogger("clinic_finance.transactions")


def _get_or_404(db: Session, transaction_id: UUID) -> FinancialTransaction:
    row = db.get(FinancialTransaction, transaction_id)
    if not row:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return row


def apply_status(row: FinancialTransaction, status: str, today: date | None = None) -> None:
    """Paid rows carry today's payment date; any other status clears it."""
    row.status = status
    row.payment_date = (today or date.today()) if status == TransactionStatus.PAID.value else None


def _filtered_query(
    type: str | None,
    status: str | None,
    category: str | None,
    supplier_id: UUID | None,
    due_from: date | None,
    due_to: date | None,
    search: str | None,
):
    q = select(FinancialTransaction).outerjoin(Supplier, FinancialTransaction.supplier_id == Supplier.id)
    if type:
        q = q.where(FinancialTransaction.type == type.strip().lower())
    if status and status.strip().lower() != "all":
        q = q.where(FinancialTransaction.status == status.strip().lower())
    if category:
        q = q.where(FinancialTransaction.category == category.strip().lower())
    if supplier_id:
        q = q.where(FinancialTransaction.supplier_id == supplier_id)
    if due_from:
        q = q.where(FinancialTransaction.due_date >= due_from)
    if due_to:
        q = q.where(FinancialTransaction.due_date <= due_to)
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.where(
            or_(
                FinancialTransaction.description.ilike(term),
                FinancialTransaction.client_name.ilike(term),
                Supplier.name.ilike(term),
            )
        )
    return q.order_by(FinancialTransaction.due_date, FinancialTransaction.created_at)


@router.get("", response_model=list[FinancialTransactionRead])
def list_transactions(
    type: str | None = Query(None, description="income | expense"),
    status: str | None = Query(None, description="pending | paid | cancelled | all"),
    category: str | None = None,
    supplier_id: UUID | None = None,
    due_from: date | None = None,
    due_to: date | None = None,
    search: str | None = Query(None, description="Description, client or supplier name (substring)"),
    db: Session = Depends(get_db),
) -> list[FinancialTransactionRead]:
    q = _filtered_query(type, status, category, supplier_id, due_from, due_to, search)
    rows = db.execute(q).scalars().all()
    return [FinancialTransactionRead.model_validate(r) for r in rows]


@router.get("/summary", response_model=TransactionSummaryResponse)
def transactions_summary(
    type: str = Query("expense", pattern=r"^(income|expense)$"),
    status: str | None = Query(None, description="pending | paid | cancelled | all"),
    search: str | None = None,
    db: Session = Depends(get_db),
) -> TransactionSummaryResponse:
    """Accounts payable (expense) or receivable (income) overview grouped by due month."""
    q = _filtered_query(type, status, None, None, None, None, search)
    rows = list(db.execute(q).scalars().all())
    return build_summary(type, rows, date.today())


@router.post("", response_model=FinancialTransactionRead, status_code=201)
def create_transaction(payload: FinancialTransactionCreate, db: Session = Depends(get_db)) -> FinancialTransactionRead:
    row = create_with_recurrence(db, payload)
    return FinancialTransactionRead.model_validate(row)


@router.get("/{transaction_id}", response_model=FinancialTransactionRead)
def get_transaction(transaction_id: UUID, db: Session = Depends(get_db)) -> FinancialTransactionRead:
    return FinancialTransactionRead.model_validate(_get_or_404(db, transaction_id))


@router.patch("/{transaction_id}", response_model=FinancialTransactionRead)
def update_transaction(
    transaction_id: UUID,
    payload: FinancialTransactionUpdate,
    db: Session = Depends(get_db),
) -> FinancialTransactionRead:
    row = _get_or_404(db, transaction_id)
    if payload.supplier_id is not None and db.get(Supplier, payload.supplier_id) is None:
        raise HTTPException(status_code=400, detail="Supplier not found")
    if payload.is_auto_recurring is not None:
        if payload.is_auto_recurring and (
            RecurrenceType(row.recurrence_type) == RecurrenceType.NONE or row.recurrence_count > 0
        ):
            raise HTTPException(status_code=400, detail="Only open-ended recurring series can be auto-recurring")
        row.is_auto_recurring = payload.is_auto_recurring
    for field in ("type", "due_date", "amount", "supplier_id", "recurrence_end_date"):
        val = getattr(payload, field)
        if val is not None:
            setattr(row, field, val)
    is_root = row.parent_transaction_id is None and row.recurrence_day_of_month is not None
    if payload.due_date is not None and is_root:
        # Moving the root moves the anchor day of the whole series.
        row.recurrence_day_of_month = payload.due_date.day
        db.execute(
            update(FinancialTransaction)
            .where(FinancialTransaction.parent_transaction_id == row.id)
            .values(recurrence_day_of_month=payload.due_date.day)
        )
    if payload.category is not None:
        row.category = payload.category.strip().lower()
    if payload.payment_method is not None:
        row.payment_method = payload.payment_method.strip().lower()
    if payload.description is not None:
        row.description = payload.description.strip()
    if payload.client_name is not None:
        row.client_name = payload.client_name.strip() or None
    if payload.notes is not None:
        row.notes = payload.notes.strip() or None
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail="Series already has an occurrence on that date") from e
    db.refresh(row)
    return FinancialTransactionRead.model_validate(row)


@router.post("/{transaction_id}/status", response_model=FinancialTransactionRead)
def change_status(
    transaction_id: UUID,
    payload: StatusChangeRequest,
    db: Session = Depends(get_db),
) -> FinancialTransactionRead:
    row = _get_or_404(db, transaction_id)
    apply_status(row, payload.status)
    db.commit()
    db.refresh(row)
    logger.info("status_changed id=%s status=%s", row.id, row.status)
    return FinancialTransactionRead.model_validate(row)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: UUID, db: Session = Depends(get_db)) -> None:
    row = _get_or_404(db, transaction_id)
    # Occurrences of a deleted root stay as standalone rows; the series stops growing.
    db.execute(
        update(FinancialTransaction)
        .where(FinancialTransaction.parent_transaction_id == row.id)
        .values(parent_transaction_id=None, is_auto_recurring=False)
    )
    db.delete(row)
    db.commit()
