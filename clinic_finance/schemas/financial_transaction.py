from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

TransactionTypeLiteral = Literal["income", "expense"]
TransactionStatusLiteral = Literal["pending", "paid", "cancelled"]
RecurrenceTypeLiteral = Literal["none", "weekly", "monthly", "yearly"]

# Occurrences a single request may write in batch mode.
MAX_RECURRENCE_COUNT = 600


class FinancialTransactionBase(BaseModel):
    type: TransactionTypeLiteral = "expense"
    category: str = Field(default="other", min_length=1, max_length=64)
    description: str = Field(..., min_length=1, max_length=512)
    amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    payment_method: str = Field(default="transfer", min_length=1, max_length=64)
    status: TransactionStatusLiteral = "pending"
    due_date: date
    supplier_id: Optional[UUID] = None
    client_name: Optional[str] = None
    notes: Optional[str] = None


class FinancialTransactionCreate(FinancialTransactionBase):
    recurrence_type: RecurrenceTypeLiteral = "none"
    recurrence_count: int = Field(
        default=0, ge=0, le=MAX_RECURRENCE_COUNT, description="0 = no fixed count (auto-recurring)"
    )
    recurrence_end_date: Optional[date] = None
    is_auto_recurring: Optional[bool] = Field(
        default=None, description="Derived from recurrence_count when omitted"
    )

    @model_validator(mode="after")
    def check_recurrence(self):
        if self.recurrence_type == "none":
            return self
        if self.recurrence_end_date is not None and self.recurrence_end_date < self.due_date:
            raise ValueError("recurrence_end_date cannot be before due_date")
        if self.is_auto_recurring and self.recurrence_count > 0:
            raise ValueError("is_auto_recurring cannot be combined with a fixed recurrence_count")
        if self.is_auto_recurring is False and self.recurrence_count == 0:
            raise ValueError("recurrence_count is required when is_auto_recurring is false")
        return self


class FinancialTransactionUpdate(BaseModel):
    type: Optional[TransactionTypeLiteral] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=64)
    description: Optional[str] = Field(default=None, min_length=1, max_length=512)
    amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    payment_method: Optional[str] = Field(default=None, min_length=1, max_length=64)
    due_date: Optional[date] = None
    supplier_id: Optional[UUID] = None
    client_name: Optional[str] = None
    notes: Optional[str] = None
    recurrence_end_date: Optional[date] = None
    is_auto_recurring: Optional[bool] = Field(default=None, description="false stops the sweep for this series")


class StatusChangeRequest(BaseModel):
    status: TransactionStatusLiteral


class FinancialTransactionRead(FinancialTransactionBase):
    id: UUID
    category: str
    description: str
    amount: Decimal
    payment_method: str
    payment_date: Optional[date] = None
    recurrence_type: str
    recurrence_count: int
    recurrence_end_date: Optional[date] = None
    recurrence_day_of_month: Optional[int] = None
    is_auto_recurring: bool
    parent_transaction_id: Optional[UUID] = None
    opened_by: Optional[str] = None
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    initial_amount: Optional[Decimal] = None
    final_amount: Optional[Decimal] = None
    expected_amount: Optional[Decimal] = None
    difference: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MonthGroup(BaseModel):
    month: str = Field(..., description="YYYY-MM of the due date")
    total: Decimal
    transactions: list[FinancialTransactionRead]


class TransactionSummaryResponse(BaseModel):
    type: TransactionTypeLiteral
    total_pending: Decimal
    pending_count: int
    due_this_week: Decimal
    months: list[MonthGroup] = Field(default_factory=list)
