"""SQLAlchemy engine, session factory and declarative base."""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from chart_ledger.config import settings


def build_engine(url: str, timeout: float = settings.STORAGE_TIMEOUT_SECONDS):
    """Create an engine whose connection waits are bounded by ``timeout`` seconds."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args={"connect_timeout": max(1, int(timeout))},
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency, one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
