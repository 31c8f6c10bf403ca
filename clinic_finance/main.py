from contextlib import asynccontextmanager
import asyncio
import logging
import time
import uuid

from fastapi import FastAPI
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_finance.api.admin import router as admin_router
from clinic_finance.api.auth import router as auth_router
from clinic_finance.api.cash_register import router as cash_register_router
from clinic_finance.api.payment_methods import router as payment_methods_router
from clinic_finance.api.recurring import router as recurring_router
from clinic_finance.api.suppliers import router as suppliers_router
from clinic_finance.api.transactions import router as transactions_router
from clinic_finance.core.auth import read_session_token
from clinic_finance.core.config import settings
from clinic_finance.db.base import Base
from clinic_finance.db.seed import seed_admin_user_if_missing, seed_payment_methods_if_empty
from clinic_finance.db.session import engine, SessionLocal
from clinic_finance.services.cash_register import check_register
from clinic_finance.services.recurrence import RecurrenceError
from clinic_finance.services.recurring_transactions import sweep_auto_recurring
import clinic_finance.models  # noqa: F401 - register models with Base.metadata

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s %(message)s",
)
request_logger = logging.getLogger("clinic_finance.request")
register_logger = logging.getLogger("clinic_finance.cash_register")


def _run_startup_sweep() -> None:
    db = SessionLocal()
    try:
        sweep_auto_recurring(db)
    finally:
        db.close()


def _check_register_once() -> None:
    db = SessionLocal()
    try:
        check_register(db)
    finally:
        db.close()


async def _cash_register_watch(interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(_check_register_once)
        except Exception:
            register_logger.exception("register_check_failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create DB tables and seed reference data
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_payment_methods_if_empty(db)
        seed_admin_user_if_missing(db)
    finally:
        db.close()
    if settings.recurrence_sweep_on_startup:
        await asyncio.to_thread(_run_startup_sweep)

    watcher = None
    if settings.cash_register_check_interval_seconds > 0:
        watcher = asyncio.create_task(_cash_register_watch(settings.cash_register_check_interval_seconds))
    yield
    if watcher is not None:
        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Clinic Financial API",
    description="Payables, receivables, recurring transactions and cash register for a clinic/spa",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app_cors_origins.split(",") if settings.app_cors_origins else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

PUBLIC_PATHS = {
    "/auth/login",
    "/auth/logout",
    "/health",
}

PROTECTED_API_PREFIXES = (
    "/admin",
    "/cash-register",
    "/payment-methods",
    "/recurring",
    "/suppliers",
    "/transactions",
    "/auth/me",
    "/auth/change-password",
)


@app.exception_handler(RecurrenceError)
async def recurrence_error_handler(request: Request, exc: RecurrenceError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    path = request.url.path
    # allow framework internals
    if (
        path in PUBLIC_PATHS
        or path.startswith("/docs")
        or path.startswith("/redoc")
        or path == "/openapi.json"
    ):
        return await call_next(request)

    operator = read_session_token(request.cookies.get(settings.auth_cookie_name))
    request.state.operator = operator

    if path.startswith(PROTECTED_API_PREFIXES) and operator is None:
        return JSONResponse(status_code=401, content={"detail": "Authentication required"})
    return await call_next(request)


# Registered after auth_middleware so it is the outer layer and also logs 401s.
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    req_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        request_logger.exception(
            "request_failed id=%s method=%s path=%s ms=%s",
            req_id,
            request.method,
            request.url.path,
            elapsed_ms,
        )
        raise
    elapsed_ms = int((time.perf_counter() - started) * 1000)
    response.headers["x-request-id"] = req_id
    request_logger.info(
        "request_done id=%s method=%s path=%s status=%s ms=%s",
        req_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(admin_router)
app.include_router(auth_router)
app.include_router(cash_register_router)
app.include_router(payment_methods_router)
app.include_router(recurring_router)
app.include_router(suppliers_router)
app.include_router(transactions_router)


@app.get("/health", include_in_schema=False)
def health() -> dict:
    return {"ok": True}
