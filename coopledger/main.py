from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from coopledger.api import accounting, reports, dividends, payments, savings
from coopledger.core.config import settings
from coopledger.services.scheduler import start_scheduler, stop_scheduler
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)
logger.info("Starting Cooperative Ledger API")

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Cooperative Ledger API",
    description="Savings and loan cooperative ledger and period closing",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(accounting.router)
app.include_router(reports.router)
app.include_router(dividends.router)
app.include_router(payments.router)
app.include_router(savings.router)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Cooperative Ledger API", "version": VERSION}


@app.get("/api/health")
def health_check():
    """Health check endpoint: checks API and database connectivity."""
    from coopledger.db.base import SessionLocal
    from coopledger.services.scheduler import get_scheduler_status
    from sqlalchemy import text
    from datetime import datetime, timezone

    db_status = "unreachable"
    db_error = None
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_error = str(e)
    finally:
        db.close()

    status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": status,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "ok",
            "database": db_status,
            "scheduler": get_scheduler_status(),
        },
        **({"database_error": db_error} if db_error else {})
    }
