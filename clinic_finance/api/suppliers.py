from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from clinic_finance.db.session import get_db
from clinic_finance.models.supplier import Supplier
from clinic_finance.schemas.supplier import SupplierCreate, SupplierRead, SupplierUpdate

router = APIRouter(prefix="/suppliers", tags=["suppliers"])

TEXT_FIELDS = (
    "tax_id",
    "contact_name",
    "phone",
    "email",
    "street",
    "number",
    "complement",
    "neighborhood",
    "city",
    "state",
    "zip_code",
    "notes",
)


def _clean(value: str | None) -> str | None:
    return (value or "").strip() or None


@router.get("", response_model=list[SupplierRead])
def list_suppliers(
    search: str | None = Query(None, description="Filter by name, contact or CNPJ (substring, case-insensitive)"),
    db: Session = Depends(get_db),
) -> list[SupplierRead]:
    q = select(Supplier).order_by(Supplier.name)
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.where(or_(Supplier.name.ilike(term), Supplier.contact_name.ilike(term), Supplier.tax_id.ilike(term)))
    rows = db.execute(q).scalars().all()
    return [SupplierRead.model_validate(r) for r in rows]


@router.post("", response_model=SupplierRead, status_code=201)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)) -> SupplierRead:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Supplier name is empty")
    row = Supplier(name=name, **{f: _clean(getattr(payload, f)) for f in TEXT_FIELDS})
    db.add(row)
    db.commit()
    db.refresh(row)
    return SupplierRead.model_validate(row)


@router.get("/{supplier_id}", response_model=SupplierRead)
def get_supplier(supplier_id: UUID, db: Session = Depends(get_db)) -> SupplierRead:
    row = db.get(Supplier, supplier_id)
    if not row:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return SupplierRead.model_validate(row)


@router.patch("/{supplier_id}", response_model=SupplierRead)
def update_supplier(supplier_id: UUID, payload: SupplierUpdate, db: Session = Depends(get_db)) -> SupplierRead:
    row = db.get(Supplier, supplier_id)
    if not row:
        raise HTTPException(status_code=404, detail="Supplier not found")
    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Supplier name is empty")
        row.name = name
    for field in TEXT_FIELDS:
        val = getattr(payload, field)
        if val is not None:
            setattr(row, field, _clean(val))
    db.commit()
    db.refresh(row)
    return SupplierRead.model_validate(row)


@router.delete("/{supplier_id}", status_code=204)
def delete_supplier(supplier_id: UUID, db: Session = Depends(get_db)) -> None:
    row = db.get(Supplier, supplier_id)
    if not row:
        raise HTTPException(status_code=404, detail="Supplier not found")
    if row.transactions:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete this supplier because it is linked to transactions.",
        )
    db.delete(row)
    db.commit()
