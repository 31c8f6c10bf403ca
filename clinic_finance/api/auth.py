from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_finance.core.auth import (
    OperatorSession,
    current_operator,
    hash_password,
    issue_session_token,
    verify_password,
)
from clinic_finance.core.config import settings
from clinic_finance.db.session import get_db
from clinic_finance.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)


def _operator_dict(session: OperatorSession) -> dict:
    return {
        "id": session.operator_id,
        "username": session.username,
        "display_name": session.display_name,
        "is_admin": session.is_admin,
    }


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> dict:
    user = db.execute(select(User).where(User.username == payload.username.strip())).scalars().first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash, user.password_salt):
        raise HTTPException(status_code=401, detail="Invalid username or password")

    session = OperatorSession(
        operator_id=str(user.id),
        username=user.username,
        display_name=user.full_name or user.username,
        is_admin=bool(user.is_admin),
    )
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=issue_session_token(
            operator_id=session.operator_id,
            username=session.username,
            display_name=session.display_name,
            is_admin=session.is_admin,
        ),
        httponly=True,
        samesite="lax",
        secure=settings.app_env.lower() == "prod",
        max_age=int(settings.auth_session_hours * 3600),
        path="/",
    )
    return {"ok": True, "operator": _operator_dict(session)}


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"ok": True}


@router.get("/me")
def me(operator: OperatorSession = Depends(current_operator)) -> dict:
    return {"operator": _operator_dict(operator)}


@router.post("/change-password")
def change_password(
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    operator: OperatorSession = Depends(current_operator),
) -> dict:
    user = db.get(User, uuid.UUID(operator.operator_id))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(payload.current_password, user.password_hash, user.password_salt):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    try:
        user.password_hash, user.password_salt = hash_password(payload.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    db.commit()
    return {"ok": True}
