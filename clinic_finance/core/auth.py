"""
Operator sessions: PBKDF2 password hashes and an HMAC-signed cookie.

The cookie carries the operator's display name so cash register openings and closings can be
attributed without a user lookup on every request.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from clinic_finance.core.config import settings

PBKDF2_ROUNDS = 120_000


@dataclass
class OperatorSession:
    operator_id: str
    username: str
    display_name: str
    is_admin: bool


def _sign(body: str) -> str:
    return hmac.new(settings.auth_secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def hash_password(password: str, salt: str | None = None) -> tuple[str, str]:
    password = (password or "").strip()
    if not password:
        raise ValueError("Password cannot be empty")
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ROUNDS)
    return digest.hex(), salt


def verify_password(password: str, expected_hash: str, salt: str) -> bool:
    try:
        calculated, _ = hash_password(password, salt=salt)
    except ValueError:
        return False
    return hmac.compare_digest(calculated, expected_hash)


def issue_session_token(*, operator_id: str, username: str, display_name: str, is_admin: bool) -> str:
    claims = {
        "sub": operator_id,
        "usr": username,
        "name": display_name,
        "adm": bool(is_admin),
        "exp": int(time.time() + settings.auth_session_hours * 3600),
    }
    raw = json.dumps(claims, separators=(",", ":")).encode("utf-8")
    body = base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")
    return f"{body}.{_sign(body)}"


def read_session_token(token: str | None) -> OperatorSession | None:
    """Return the session a cookie stands for, or None when it is missing, forged or expired."""
    body, _, sig = (token or "").partition(".")
    if not body or not sig or not hmac.compare_digest(sig.encode("utf-8"), _sign(body).encode("utf-8")):
        return None
    try:
        claims = json.loads(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
    except (ValueError, UnicodeDecodeError):
        return None
    if int(claims.get("exp", 0)) <= time.time():
        return None
    operator_id = str(claims.get("sub") or "").strip()
    username = str(claims.get("usr") or "").strip()
    if not operator_id or not username:
        return None
    return OperatorSession(
        operator_id=operator_id,
        username=username,
        display_name=str(claims.get("name") or username),
        is_admin=bool(claims.get("adm")),
    )


def current_operator(request: Request) -> OperatorSession:
    operator = getattr(request.state, "operator", None)
    if operator is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return operator


def require_admin(request: Request) -> OperatorSession:
    operator = current_operator(request)
    if not operator.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return operator
