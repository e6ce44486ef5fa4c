"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from scheduledesk.config import settings
from scheduledesk.database import Base, engine

# Import routers
from scheduledesk.routers import channels, schedule, timer

# Import all models so Base.metadata knows about them
from scheduledesk.models.key_value import KVEntry, KVListItem, KVSetMember  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Schedule Desk",
    description="Per-channel 24-hour stream schedules and countdown timers for stream overlays",
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

# Register routers
app.include_router(channels.router, prefix="/api/channels", tags=["Channels"])
app.include_router(schedule.router, prefix="/api/schedule", tags=["Schedule"])
app.include_router(timer.router, prefix="/api/timer", tags=["Timer"])


@app.on_event("startup")
def on_startup():
    """Create the key-value tables on startup (for SQLite dev mode)."""
    if not settings.REDIS_URL and settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
