"""
Seed reference data on startup: default payment methods and the first admin operator.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from clinic_finance.core.auth import hash_password
from clinic_finance.models.payment_method import PaymentMethod
from clinic_finance.models.user import User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


DEFAULT_PAYMENT_METHODS = [
    ("cash", "Cash"),
    ("debit_card", "Debit Card"),
    ("credit_card", "Credit Card"),
    ("pix", "PIX"),
    ("transfer", "Bank Transfer"),
    ("link", "Payment Link"),
]


def seed_payment_methods_if_empty(session: "Session") -> int:
    """
    Insert default payment methods if none exist.
    """
    count = session.execute(select(func.count(PaymentMethod.id))).scalar()
    if count > 0:
        return 0
    for key, name in DEFAULT_PAYMENT_METHODS:
        session.add(PaymentMethod(key=key, name=name, is_active=True))
    session.commit()
    return len(DEFAULT_PAYMENT_METHODS)


def seed_admin_user_if_missing(session: "Session") -> int:
    """
    Ensure the default admin user exists for first login.
    """
    existing = (
        session.execute(select(User).where(func.lower(User.username) == "admin"))
        .scalars()
        .first()
    )
    if existing:
        return 0
    password_hash, password_salt = hash_password("admin")
    session.add(
        User(
            username="admin",
            full_name="Administrator",
            password_hash=password_hash,
            password_salt=password_salt,
            is_admin=True,
            is_active=True,
        )
    )
    session.commit()
    return 1
