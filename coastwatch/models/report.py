"""
report.py — Pydantic schemas for hazard reports.

ReportCreate          — what the mobile client sends
ReportOut             — stored report returned to clients
ReportSubmitResponse  — immediate response to a submission (report is unscored)
StatusUpdateRequest   — manual override from the dashboard
ReportStats           — dashboard aggregates (status / hazard kind / timeline)
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ── Enumerations ──────────────────────────────────────────────────────────────

HazardKind = Literal["Tsunami", "Storm Surge", "High Waves", "Abnormal", "Other"]
ReportStatus = Literal["pending", "verified", "rejected"]

PENDING: ReportStatus = "pending"
VERIFIED: ReportStatus = "verified"
REJECTED: ReportStatus = "rejected"

ANONYMOUS = "anonymous"


# ── Request ───────────────────────────────────────────────────────────────────

class ReportCreate(BaseModel):
    """Payload for POST /api/v1/reports."""
    longitude: float
    latitude: float
    description: str = Field(..., max_length=5000)
    media_url: str = Field(..., min_length=1, max_length=3000)
    hazard_kind: HazardKind
    submitted_by: Optional[str] = Field(default=None, max_length=200)


class StatusUpdateRequest(BaseModel):
    """Payload for PATCH /api/v1/reports/{id}/status."""
    status: ReportStatus


# ── Report ────────────────────────────────────────────────────────────────────

class ReportOut(BaseModel):
    """A stored hazard report."""
    id: str
    coordinates: tuple[float, float]       # (longitude, latitude)
    description: str
    media_url: str
    hazard_kind: HazardKind
    status: ReportStatus = PENDING
    confidence_score: int = Field(default=0, ge=0, le=100)
    submitted_by: str = ANONYMOUS
    created_at: datetime
    scored_at: Optional[datetime] = None


class ReportSubmitResponse(BaseModel):
    """Response body for POST /api/v1/reports."""
    message: str
    report_id: str
    report: ReportOut


# ── Dashboard aggregates ──────────────────────────────────────────────────────

class TimelinePoint(BaseModel):
    """Number of reports created on one UTC day."""
    date: str            # YYYY-MM-DD
    count: int


class ReportStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_hazard_kind: dict[str, int]
    timeline: list[TimelinePoint]
