from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/clinic"
    app_env: str = "dev"
    app_cors_origins: str = "*"
    # Session cookie auth for operators (reception, managers)
    auth_secret: str = "change-me"
    auth_cookie_name: str = "clinic_session"
    auth_session_hours: float = 12
    # Auto-recurring transactions: how far past today the sweep materializes occurrences
    recurrence_months_ahead: int = 2
    # Upper bound on occurrences per series when neither a count nor an end date is given
    recurrence_fallback_occurrences: int = 60
    recurrence_sweep_on_startup: bool = True
    # Seconds between cash register re-checks; 0 disables the background task
    cash_register_check_interval_seconds: int = 60


settings = Settings()
