from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field


class PaymentMethodCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    key: str | None = Field(None, description="Slug; derived from name when omitted")
    is_active: bool = True


class PaymentMethodUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    is_active: bool | None = None


class PaymentMethodRead(BaseModel):
    id: UUID
    key: str
    name: str
    is_active: bool

    model_config = {"from_attributes": True}
