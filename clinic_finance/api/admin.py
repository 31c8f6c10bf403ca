"""Admin endpoints: operator (user) management."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_finance.core.auth import hash_password, require_admin
from clinic_finance.db.session import get_db
from clinic_finance.models.user import User

router = APIRouter(prefix="/admin", tags=["admin"])


class UserCreatePayload(BaseModel):
    username: str
    password: str
    full_name: str | None = None
    is_admin: bool = False
    is_active: bool = True


class UserUpdatePayload(BaseModel):
    password: str | None = None
    full_name: str | None = None
    is_admin: bool | None = None
    is_active: bool | None = None


def _user_dict(u: User) -> dict:
    return {
        "id": str(u.id),
        "username": u.username,
        "full_name": u.full_name,
        "is_admin": bool(u.is_admin),
        "is_active": bool(u.is_active),
    }


def _hash_or_400(password: str) -> tuple[str, str]:
    try:
        return hash_password(password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/users")
def list_users(db: Session = Depends(get_db), _=Depends(require_admin)) -> list[dict]:
    users = db.execute(select(User).order_by(User.username.asc())).scalars().all()
    return [_user_dict(u) for u in users]


@router.post("/users", status_code=201)
def create_user(payload: UserCreatePayload, db: Session = Depends(get_db), _=Depends(require_admin)) -> dict:
    username = payload.username.strip()
    if not username:
        raise HTTPException(status_code=400, detail="Username is required")
    existing = db.execute(select(User).where(User.username == username)).scalars().first()
    if existing:
        raise HTTPException(status_code=400, detail="Username already exists")
    password_hash, password_salt = _hash_or_400(payload.password)
    user = User(
        username=username,
        full_name=(payload.full_name or "").strip() or None,
        password_hash=password_hash,
        password_salt=password_salt,
        is_admin=bool(payload.is_admin),
        is_active=bool(payload.is_active),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _user_dict(user)


@router.patch("/users/{user_id}")
def update_user(user_id: UUID, payload: UserUpdatePayload, db: Session = Depends(get_db), _=Depends(require_admin)) -> dict:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if payload.password is not None:
        user.password_hash, user.password_salt = _hash_or_400(payload.password)
    if payload.full_name is not None:
        user.full_name = payload.full_name.strip() or None
    if payload.is_admin is not None:
        user.is_admin = bool(payload.is_admin)
    if payload.is_active is not None:
        user.is_active = bool(payload.is_active)
    db.commit()
    db.refresh(user)
    return _user_dict(user)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(user_id: UUID, db: Session = Depends(get_db), _=Depends(require_admin)) -> None:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.username.lower() == "admin":
        raise HTTPException(status_code=400, detail="Default admin user cannot be deleted")
    db.delete(user)
    db.commit()
