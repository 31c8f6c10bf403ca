from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from clinic_finance.schemas.financial_transaction import FinancialTransactionRead


class OpenRegisterRequest(BaseModel):
    initial_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    cash_date: Optional[date] = Field(None, description="Defaults to today")
    operator: Optional[str] = Field(None, description="Defaults to the logged-in user")
    notes: Optional[str] = None


class CloseRegisterRequest(BaseModel):
    final_amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2, description="Counted cash")
    cash_date: Optional[date] = Field(None, description="Date of the opening being closed; defaults to the open register")
    operator: Optional[str] = None
    notes: Optional[str] = None


class RegisterBalance(BaseModel):
    initial_amount: Decimal = Decimal("0")
    total_receipts: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    expected_cash: Decimal = Decimal("0")
    receipts_by_method: dict[str, Decimal] = Field(default_factory=dict)


class RegisterStatus(BaseModel):
    today: date
    is_open: bool
    opened_on: Optional[date] = None
    opened_by: Optional[str] = None
    previous_open_date: Optional[date] = Field(None, description="Set when a register from an earlier day was never closed")
    balance: RegisterBalance = Field(default_factory=RegisterBalance)


class CloseRegisterResponse(BaseModel):
    opening: FinancialTransactionRead
    closing: FinancialTransactionRead


class DailyReport(BaseModel):
    day: date
    opened_by: Optional[str] = None
    opened_at: Optional[date] = None
    closed_at: Optional[datetime] = None
    initial_amount: Decimal = Decimal("0")
    final_amount: Optional[Decimal] = None
    difference: Decimal = Decimal("0")
    balance: RegisterBalance = Field(default_factory=RegisterBalance)
    transactions: list[FinancialTransactionRead] = Field(default_factory=list)
