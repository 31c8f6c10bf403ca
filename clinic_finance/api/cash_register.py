from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_finance.core.auth import OperatorSession, current_operator
from clinic_finance.db.session import get_db
from clinic_finance.schemas.cash_register import (
    CloseRegisterRequest,
    CloseRegisterResponse,
    DailyReport,
    OpenRegisterRequest,
    RegisterStatus,
)
from clinic_finance.schemas.financial_transaction import FinancialTransactionRead
from clinic_finance.services.cash_register import close_register, daily_report, open_register, register_status

router = APIRouter(prefix="/cash-register", tags=["cash-register"])


def _operator_name(requested: str | None, session: OperatorSession) -> str:
    return (requested or "").strip() or session.display_name


@router.get("/status", response_model=RegisterStatus)
def get_status(db: Session = Depends(get_db)) -> RegisterStatus:
    return register_status(db)


@router.post("/open", response_model=FinancialTransactionRead, status_code=201)
def open_cash_register(
    payload: OpenRegisterRequest,
    db: Session = Depends(get_db),
    session: OperatorSession = Depends(current_operator),
) -> FinancialTransactionRead:
    row = open_register(
        db,
        operator=_operator_name(payload.operator, session),
        initial_amount=payload.initial_amount,
        cash_date=payload.cash_date,
        notes=payload.notes,
    )
    return FinancialTransactionRead.model_validate(row)


@router.post("/close", response_model=CloseRegisterResponse)
def close_cash_register(
    payload: CloseRegisterRequest,
    db: Session = Depends(get_db),
    session: OperatorSession = Depends(current_operator),
) -> CloseRegisterResponse:
    opening, closing = close_register(
        db,
        operator=_operator_name(payload.operator, session),
        final_amount=payload.final_amount,
        cash_date=payload.cash_date,
        notes=payload.notes,
    )
    return CloseRegisterResponse(
        opening=FinancialTransactionRead.model_validate(opening),
        closing=FinancialTransactionRead.model_validate(closing),
    )


@router.get("/report", response_model=DailyReport)
def get_daily_report(
    day: date | None = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db),
) -> DailyReport:
    return daily_report(db, day or date.today())
