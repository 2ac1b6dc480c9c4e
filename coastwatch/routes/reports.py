"""
reports.py — Hazard report routes.

Routes:
  POST  /api/v1/reports               — submit a report (30/minute); verification runs in the background
  GET   /api/v1/reports               — list reports (?status=, ?role=analyst → verified only)
  GET   /api/v1/reports/hotspots      — grid clusters of verified reports
  GET   /api/v1/reports/stats         — dashboard aggregates
  GET   /api/v1/reports/{id}          — single report
  PATCH /api/v1/reports/{id}/status   — manual status override by staff

HOW A SUBMISSION FLOWS
──────────────────────
1. The mobile client uploads the photo to the media host, then POSTs the
   report with the media URL and the phone's coordinates.
2. The payload is validated (bad coordinates / blank description → 400),
   stored as pending with confidence_score 0, and handed to the
   VerificationQueue.
3. The route returns 201 immediately. The verification run scores the report
   later and may auto-verify it (see services/verification.py).
4. Staff can PATCH the status at any time. A manual decision always wins over
   a verification run that finishes afterwards.

Authentication is handled upstream (Firebase on the clients); the `role`
query parameter is taken as given.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from coastwatch.ai.classifier_client import classifier_client
from coastwatch.core.config import settings
from coastwatch.core.database import get_db
from coastwatch.core.errors import InvalidInput
from coastwatch.core.rate_limit import limiter
from coastwatch.models.hotspot import HotspotCluster
from coastwatch.models.report import (
    ANONYMOUS,
    PENDING,
    VERIFIED,
    ReportCreate,
    ReportOut,
    ReportStats,
    ReportStatus,
    ReportSubmitResponse,
    StatusUpdateRequest,
)
from coastwatch.services.geofence import validate_coordinate
from coastwatch.services.hotspots import compute_hotspots
from coastwatch.services.report_stats import summarize_reports
from coastwatch.services.report_store import ReportStore, doc_to_report, to_object_id
from coastwatch.services.verification import ScoringConfig, VerificationEngine
from coastwatch.services.verification_queue import VerificationQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

ANALYST_ROLE = "analyst"


# ── Dependencies ──────────────────────────────────────────────────────────────

def get_report_store(db=Depends(get_db)) -> Optional[ReportStore]:
    return ReportStore(db) if db is not None else None


def get_verification_queue(
    store: Optional[ReportStore] = Depends(get_report_store),
) -> Optional[VerificationQueue]:
    if store is None:
        return None
    engine = VerificationEngine(store, classifier_client, ScoringConfig.from_settings(settings))
    return VerificationQueue(engine)


def _require_store(store: Optional[ReportStore]) -> ReportStore:
    if store is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return store


def _validate_oid(report_id: str):
    try:
        return to_object_id(report_id)
    except InvalidId:
        raise HTTPException(status_code=422, detail="Invalid report ID format")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _new_report_doc(payload: ReportCreate) -> dict:
    """Validate a submission and build the pending document. Raises InvalidInput."""
    lon = validate_coordinate(payload.longitude, "longitude")
    lat = validate_coordinate(payload.latitude, "latitude")
    if not -180 <= lon <= 180 or not -90 <= lat <= 90:
        raise InvalidInput(f"Coordinates out of range: ({lon}, {lat})")

    description = payload.description.strip()
    if not description:
        raise InvalidInput("description must not be empty")
    media_url = payload.media_url.strip()
    if not media_url:
        raise InvalidInput("media_url must not be empty")

    return {
        "location": {"type": "Point", "coordinates": [lon, lat]},
        "description": description,
        "media_url": media_url,
        "hazard_kind": payload.hazard_kind,
        "status": PENDING,
        "confidence_score": 0,
        "submitted_by": (payload.submitted_by or "").strip() or ANONYMOUS,
        "created_at": datetime.now(tz=timezone.utc),
        "scored_at": None,
    }


# ── Routes ────────────────────────────────────────────────────────────────────

@router.post("", response_model=ReportSubmitResponse, status_code=201)
@limiter.limit("30/minute")
async def submit_report(
    request: Request,
    payload: ReportCreate,
    store: Optional[ReportStore] = Depends(get_report_store),
    queue: Optional[VerificationQueue] = Depends(get_verification_queue),
):
    """Store a new pending report and queue its verification run."""
    store = _require_store(store)

    try:
        doc = _new_report_doc(payload)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    doc = await store.insert(doc)
    logger.info("Report %s saved (%s)", doc["_id"], doc["hazard_kind"])

    if queue is not None:
        queue.enqueue(doc)

    return ReportSubmitResponse(
        message="Hazard report submitted successfully and is being processed.",
        report_id=str(doc["_id"]),
        report=doc_to_report(doc),
    )


@router.get("", response_model=list[ReportOut])
async def list_reports(
    status: Optional[ReportStatus] = Query(default=None),
    role: Optional[str] = Query(default=None, description="'analyst' sees verified reports only"),
    store: Optional[ReportStore] = Depends(get_report_store),
):
    """Reports newest first. Analysts only ever see verified reports."""
    if store is None:
        return []

    if role == ANALYST_ROLE:
        status = VERIFIED

    items = []
    for doc in await store.list_reports(status=status):
        try:
            items.append(doc_to_report(doc))
        except Exception as exc:
            logger.warning("Skipping malformed report doc: %s", exc)
    return items


@router.get("/hotspots", response_model=list[HotspotCluster])
async def list_hotspots(store: Optional[ReportStore] = Depends(get_report_store)):
    """Grid cells (≈1 km) holding more than one verified report."""
    if store is None:
        return []
    return await compute_hotspots(
        store,
        precision=settings.hotspot_precision,
        min_count=settings.hotspot_min_count,
    )


@router.get("/stats", response_model=ReportStats)
async def report_stats(store: Optional[ReportStore] = Depends(get_report_store)):
    """Counts by status and hazard kind, plus a daily timeline."""
    if store is None:
        return summarize_reports([])
    return summarize_reports(await store.list_reports())


@router.get("/{report_id}", response_model=ReportOut)
async def get_report(report_id: str, store: Optional[ReportStore] = Depends(get_report_store)):
    store = _require_store(store)
    oid = _validate_oid(report_id)
    doc = await store.get(oid)
    if not doc:
        raise HTTPException(status_code=404, detail="Report not found")
    return doc_to_report(doc)


@router.patch("/{report_id}/status", response_model=ReportOut)
async def update_report_status(
    report_id: str,
    payload: StatusUpdateRequest,
    store: Optional[ReportStore] = Depends(get_report_store),
):
    """Manual override — allowed at any stage, leaves confidence_score as is."""
    store = _require_store(store)
    oid = _validate_oid(report_id)

    doc = await store.set_status(oid, payload.status)
    if not doc:
        raise HTTPException(status_code=404, detail="Report not found")

    logger.info("Report %s manually set to %s", report_id, payload.status)
    return doc_to_report(doc)
