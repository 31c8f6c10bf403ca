from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_finance.db.base import Base


class TransactionType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


CASH_OPENING = "cash_opening"
CASH_CLOSING = "cash_closing"
CASH_REGISTER_CATEGORIES = (CASH_OPENING, CASH_CLOSING)


class FinancialTransaction(Base):
    """
    A payable (expense) or receivable (income). Recurring series are plain rows that point
    back at the first occurrence through parent_transaction_id; cash register openings and
    closings are stored here too under the reserved cash_* categories.
    """

    __tablename__ = "financial_transactions"
    __table_args__ = (
        UniqueConstraint("parent_transaction_id", "due_date", name="uq_financial_transaction_series_due_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(16), index=True)  # income | expense
    category: Mapped[str] = mapped_column(String(64), index=True)
    description: Mapped[str] = mapped_column(String(512))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    payment_method: Mapped[str] = mapped_column(String(64), default="transfer")
    status: Mapped[str] = mapped_column(String(16), default=TransactionStatus.PENDING.value, index=True)
    due_date: Mapped[date] = mapped_column(Date, index=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    supplier_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    client_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    recurrence_type: Mapped[str] = mapped_column(String(16), default="none")  # none | weekly | monthly | yearly
    recurrence_count: Mapped[int] = mapped_column(Integer, default=0)
    recurrence_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    recurrence_day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_auto_recurring: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    # Weak back-reference to the first occurrence of a series; never cascades.
    parent_transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("financial_transactions.id", ondelete="SET NULL"), nullable=True, index=True
    )

    opened_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    closed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    initial_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    final_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    expected_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    difference: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    supplier: Mapped["Supplier | None"] = relationship("Supplier", back_populates="transactions")
