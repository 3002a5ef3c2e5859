# school_app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from pymongo.errors import PyMongoError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from school_app.core.config import setup_logging, SCHEDULER_TIMEZONE, FEE_DUE_REFRESH_MINUTES, CORS_ORIGINS
from school_app.core.errors import register_exception_handlers
from school_app.core.rate_limiter import get_rate_limiter
from school_app.middleware.logging import RequestLoggingMiddleware
from school_app.middleware.authentication import AuthMiddleware
from school_app.db.database import init_db, close_db, ping_database
from school_app.api.v1.api import api_router_v1
from school_app.scheduler.jobs import refresh_overdue_fee_dues

logger = logging.getLogger(__name__)

# --- Scheduler Instance ---
scheduler = AsyncIOScheduler(timezone=SCHEDULER_TIMEZONE)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application startup...")
    await init_db()
    logger.info("Database initialized.")

    logger.info("Adding scheduler jobs...")
    scheduler.add_job(
        refresh_overdue_fee_dues,
        trigger=IntervalTrigger(minutes=FEE_DUE_REFRESH_MINUTES),
        id="refresh_fee_dues_job",
        name="Refresh Overdue Fee Dues",
        replace_existing=True,
        misfire_grace_time=60 * FEE_DUE_REFRESH_MINUTES,
    )
    scheduler.start()
    logger.info(f"Scheduler started with timezone: {scheduler.timezone}")
    yield
    logger.info("Application shutdown...")
    if scheduler.running: scheduler.shutdown()
    close_db()

app = FastAPI(
    title="School Management API",
    description="Students, admissions, fees and faculty with counter-backed identifiers.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- MIDDLEWARE ---

# 1. Error handling
register_exception_handlers(app)

# 2. Authentication (inner) and request logging (outer)
app.add_middleware(AuthMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# 3. Rate limiter state for @limiter.limit
app.state.limiter = get_rate_limiter()

# 4. GZip / CORS
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- END MIDDLEWARE ---

app.include_router(api_router_v1)

@app.get("/")
async def read_root():
    return {"message": "Welcome to the School Management API!"}

@app.get("/health/db")
async def health_db():
    try:
        await ping_database()
        return {"status": "success", "message": "MongoDB connection is healthy."}
    except PyMongoError as e:
        logger.error(f"MongoDB ping failed: {e}")
        raise HTTPException(status_code=503, detail="MongoDB connection failed.")
