from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from clinic_finance.schemas.financial_transaction import FinancialTransactionRead


class SeriesRead(BaseModel):
    root_id: UUID
    recurrence_type: str
    is_auto_recurring: bool
    occurrences: list[FinancialTransactionRead] = Field(default_factory=list)


class NextOccurrenceResponse(BaseModel):
    created: FinancialTransactionRead | None = None
    stopped: bool = Field(False, description="True when the series has reached its end date or cap")


class SweepResponse(BaseModel):
    horizon: date
    series_checked: int
    created: int
    conflicts: int
