"""
Health check endpoint.

Reports API liveness, MongoDB connectivity, whether the image classifier is
live or mocked, and how many verification runs are currently in flight.
The endpoint answers 200 even with the database down so monitors can tell
"API down" from "API up, DB unreachable".
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from coastwatch.core import database as db_module
from coastwatch.core.config import APP_VERSION, settings
from coastwatch.services.verification_queue import inflight_count

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str             # "ok" whenever the process is serving
    version: str
    database: str           # "connected" | "disconnected"
    classifier: str         # "mock" | "live"
    verifications_in_flight: int
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    db_status = "disconnected"
    try:
        # Module reference so tests can swap db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        database=db_status,
        classifier="mock" if settings.ai_mock_mode else "live",
        verifications_in_flight=inflight_count(),
        environment=settings.environment,
    )
