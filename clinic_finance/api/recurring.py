from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_finance.db.session import get_db
from clinic_finance.models.financial_transaction import FinancialTransaction
from clinic_finance.schemas.financial_transaction import FinancialTransactionRead
from clinic_finance.schemas.recurring import NextOccurrenceResponse, SeriesRead, SweepResponse
from clinic_finance.services.recurrence import RecurrenceError, RecurrenceType
from clinic_finance.services.recurring_transactions import (
    list_series,
    materialize_next,
    series_root,
    sweep_auto_recurring,
)

router = APIRouter(prefix="/recurring", tags=["recurring"])


def _root_or_404(db: Session, transaction_id: UUID) -> FinancialTransaction:
    row = db.get(FinancialTransaction, transaction_id)
    if not row:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return series_root(db, row)


@router.get("/{transaction_id}/series", response_model=SeriesRead)
def get_series(transaction_id: UUID, db: Session = Depends(get_db)) -> SeriesRead:
    root = _root_or_404(db, transaction_id)
    return SeriesRead(
        root_id=root.id,
        recurrence_type=root.recurrence_type,
        is_auto_recurring=root.is_auto_recurring,
        occurrences=[FinancialTransactionRead.model_validate(r) for r in list_series(db, root)],
    )


@router.post("/{transaction_id}/next", response_model=NextOccurrenceResponse)
def create_next_occurrence(transaction_id: UUID, db: Session = Depends(get_db)) -> NextOccurrenceResponse:
    """Materialize the occurrence after the latest one of the series, ignoring the sweep horizon."""
    root = _root_or_404(db, transaction_id)
    if RecurrenceType(root.recurrence_type) == RecurrenceType.NONE:
        raise HTTPException(status_code=400, detail="Transaction does not recur")
    try:
        row = materialize_next(db, root)
        if row is None:
            return NextOccurrenceResponse(created=None, stopped=True)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail="Next occurrence already exists") from e
    except RecurrenceError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    db.refresh(row)
    return NextOccurrenceResponse(created=FinancialTransactionRead.model_validate(row), stopped=False)


@router.post("/sweep", response_model=SweepResponse)
def run_sweep(
    today: date | None = Query(None, description="Reference date; defaults to today"),
    months_ahead: int | None = Query(None, ge=0, le=24),
    db: Session = Depends(get_db),
) -> SweepResponse:
    result = sweep_auto_recurring(db, today=today, months_ahead=months_ahead)
    return SweepResponse(
        horizon=result.horizon,
        series_checked=result.series_checked,
        created=result.created,
        conflicts=result.conflicts,
    )
