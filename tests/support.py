"""Shared fixtures for the unittest suites: in-memory SQLite sessions and an authenticated API client."""
from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RECURRENCE_SWEEP_ON_STARTUP", "false")
os.environ.setdefault("CASH_REGISTER_CHECK_INTERVAL_SECONDS", "0")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import clinic_finance.models  # noqa: E402,F401 - register models with Base.metadata
from clinic_finance.db.base import Base  # noqa: E402


def make_session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    return engine, sessionmaker(bind=engine, autocommit=False, autoflush=False)


def make_client(username: str = "admin", password: str = "admin"):
    """Return (client, session_factory, engine) with get_db pointed at a fresh database and a logged-in admin."""
    from fastapi.testclient import TestClient

    from clinic_finance.db.seed import seed_admin_user_if_missing, seed_payment_methods_if_empty
    from clinic_finance.db.session import get_db
    from clinic_finance.main import app

    engine, factory = make_session_factory()

    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    db = factory()
    try:
        seed_payment_methods_if_empty(db)
        seed_admin_user_if_missing(db)
    finally:
        db.close()

    client = TestClient(app)
    if username:
        res = client.post("/auth/login", json={"username": username, "password": password})
        assert res.status_code == 200, res.text
    return client, factory, engine
