"""FastAPI application entry point for UniFi Stats.

This service is a browser-facing viewer for the UniFi Controller API. It
remembers the selected controller, site and data collection per browser
session, caches the controller login, site list and version, and reports
daily WAN usage from the site statistics.

Run with: uvicorn unifi_stats.main:app --reload
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI

from unifi_stats.config import settings
from unifi_stats.database import SessionLocal, init_db
from unifi_stats.routers.browser import router as browser_router
from unifi_stats.services.session_store import SessionStore

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Browse the data collections exposed by UniFi controllers: pick a "
        "controller, a site and a collection, and get the result together with "
        "a daily usage report for the site."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(browser_router)


@app.on_event("startup")
def on_startup():  # pragma: no cover
    """Create the session table and drop sessions that went idle while the service was down."""
    init_db()
    db = SessionLocal()
    try:
        purged = SessionStore(db, settings.COOKIE_TIMEOUT).purge_expired(
            datetime.now(timezone.utc)
        )
    finally:
        db.close()
    if purged:
        logger.info("Purged %d expired browser sessions", purged)


@app.get("/", tags=["Health"])
def health_check():
    """Health check endpoint to verify the service is running."""
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.APP_VERSION}
