"""
CoastWatch API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups,
and manages the MongoDB connection lifecycle.

Run locally:
    uvicorn coastwatch.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from coastwatch.core.config import APP_VERSION, settings
from coastwatch.core.database import close_mongo_connection, connect_to_mongo
from coastwatch.core.rate_limit import limiter
from coastwatch.routes.health import router as health_router
from coastwatch.routes.reports import router as reports_router
from coastwatch.routes.schemes import router as schemes_router
from coastwatch.routes.social import router as social_router
from coastwatch.services.verification_queue import inflight_count

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to MongoDB on startup; close it on shutdown."""
    logger.info("Starting CoastWatch API (env: %s)", settings.environment)
    await connect_to_mongo()
    yield
    pending = inflight_count()
    if pending:
        # No cancellation path: unfinished runs leave their reports pending.
        logger.warning("Shutting down with %d verification run(s) in flight", pending)
    logger.info("Shutting down CoastWatch API")
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="CoastWatch API",
    description=(
        "Coastal hazard reporting backend: report intake, automatic plausibility "
        "scoring, hotspot aggregation and social-media signal ingestion."
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: the staff dashboard and the mobile app (Expo dev server) call the API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(reports_router)
app.include_router(social_router)
app.include_router(schemes_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "CoastWatch API",
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
