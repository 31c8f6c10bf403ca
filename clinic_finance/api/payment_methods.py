from __future__ import annotations

import re
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from clinic_finance.db.session import get_db
from clinic_finance.models.payment_method import PaymentMethod
from clinic_finance.schemas.payment_method import PaymentMethodCreate, PaymentMethodRead, PaymentMethodUpdate

router = APIRouter(prefix="/payment-methods", tags=["payment-methods"])


def method_key(text: str) -> str:
    """'Cartão de Crédito' -> 'cartão_de_crédito', 'Card-to-Card' -> 'card_to_card'."""
    return re.sub(r"[\s\-]+", "_", (text or "").strip().lower()).strip("_")


def _name_taken(db: Session, name: str, exclude_id: UUID | None = None) -> bool:
    q = select(PaymentMethod).where(func.lower(PaymentMethod.name) == name.lower())
    if exclude_id is not None:
        q = q.where(PaymentMethod.id != exclude_id)
    return db.execute(q).scalars().first() is not None


@router.get("", response_model=list[PaymentMethodRead])
def list_payment_methods(active_only: bool = False, db: Session = Depends(get_db)) -> list[PaymentMethodRead]:
    q = select(PaymentMethod).order_by(PaymentMethod.name)
    if active_only:
        q = q.where(PaymentMethod.is_active.is_(True))
    rows = db.execute(q).scalars().all()
    return [PaymentMethodRead.model_validate(r) for r in rows]


@router.post("", response_model=PaymentMethodRead, status_code=201)
def create_payment_method(payload: PaymentMethodCreate, db: Session = Depends(get_db)) -> PaymentMethodRead:
    name = payload.name.strip()
    key = method_key(payload.key or name)
    if not key:
        raise HTTPException(status_code=400, detail="Payment method name is empty")
    if _name_taken(db, name) or db.execute(select(PaymentMethod).where(PaymentMethod.key == key)).scalars().first():
        raise HTTPException(status_code=400, detail="Payment method already exists")
    row = PaymentMethod(key=key, name=name, is_active=payload.is_active)
    db.add(row)
    db.commit()
    db.refresh(row)
    return PaymentMethodRead.model_validate(row)


@router.get("/{method_id}", response_model=PaymentMethodRead)
def get_payment_method(method_id: UUID, db: Session = Depends(get_db)) -> PaymentMethodRead:
    row = db.get(PaymentMethod, method_id)
    if not row:
        raise HTTPException(status_code=404, detail="Payment method not found")
    return PaymentMethodRead.model_validate(row)


@router.patch("/{method_id}", response_model=PaymentMethodRead)
def update_payment_method(
    method_id: UUID, payload: PaymentMethodUpdate, db: Session = Depends(get_db)
) -> PaymentMethodRead:
    row = db.get(PaymentMethod, method_id)
    if not row:
        raise HTTPException(status_code=404, detail="Payment method not found")
    if payload.name is not None:
        name = payload.name.strip()
        if _name_taken(db, name, exclude_id=row.id):
            raise HTTPException(status_code=400, detail="Payment method already exists")
        row.name = name
    if payload.is_active is not None:
        row.is_active = payload.is_active
    db.commit()
    db.refresh(row)
    return PaymentMethodRead.model_validate(row)


@router.delete("/{method_id}", status_code=204)
def delete_payment_method(method_id: UUID, db: Session = Depends(get_db)) -> None:
    row = db.get(PaymentMethod, method_id)
    if not row:
        raise HTTPException(status_code=404, detail="Payment method not found")
    db.delete(row)
    db.commit()
