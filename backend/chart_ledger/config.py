"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./chart_ledger.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Clinic-local calendar used to decide whether a visit date is in the future
    CLINIC_TIMEZONE: str = "Asia/Tokyo"

    # Fixed catalog of therapy-method codes an entry may reference
    THERAPY_CATALOG: list[str] = ["超音波療法", "低周波療法", "ホットパック"]

    # Counted in half-width units: full-width characters count as 2
    MIN_AMENDMENT_REASON_LENGTH: int = 10

    ENTRY_LOCK_TIMEOUT_SECONDS: float = 10.0
    STORAGE_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"


settings = Settings()
