"""FastAPI application entry point."""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from chart_ledger.config import settings
from chart_ledger.database import Base, engine
from chart_ledger.errors import LedgerError

# Import routers
from chart_ledger.routers import entries, audit, exports, catalog

# Import all models so Base.metadata knows about them
from chart_ledger.models.ledger import Ledger                    # noqa: F401
from chart_ledger.models.treatment_entry import TreatmentEntry   # noqa: F401
from chart_ledger.models.audit_event import AuditEvent           # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Clinical Record Ledger",
    description="Append/amend-only treatment timeline with audited amendments and chart export",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
def ledger_error_handler(request: Request, exc: LedgerError):
    """Render every rejected ledger operation as {error, detail} with its status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register routers
app.include_router(entries.router, prefix="/api/patients", tags=["Entries"])
app.include_router(audit.router, prefix="/api/patients", tags=["Audit"])
app.include_router(exports.router, prefix="/api/patients", tags=["Export"])
app.include_router(catalog.router, prefix="/api/therapy-methods", tags=["Catalog"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
