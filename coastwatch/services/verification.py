"""
verification.py — Automatic confidence scoring for newly submitted reports.

PIPELINE (one run per report creation)
──────────────────────────────────────
  Gate A  geo-fence     outside the region → stop. No classifier call,
                        score stays 0, status stays pending, nothing written.
                        inside → +30 points.
  Gate B  classifier    top label in the candidate set with score > 0.70
                        → +round(score × 70) points; anything else,
                        including a ClassificationFailure → +0.
  Compose               score = gate A + gate B  (never above 100)
  Decide                score ≥ 85 → verified, else stays pending
  Persist               one update conditioned on status == pending, so a
                        staff decision made while the run was in flight wins.
                        The score is still recorded for audit.

Every weight and threshold comes from ScoringConfig; nothing here reads the
global settings object.

USAGE
─────
    engine = VerificationEngine(ReportStore(db), classifier_client,
                                ScoringConfig.from_settings())
    outcome = await engine.run(report_doc)
    # outcome.score → 93, outcome.status → "verified"

run() never raises. Unexpected errors are logged with the report id and the
report is left pending with whatever partial score was reached.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from coastwatch.ai.classifier_client import (
    Classification,
    ClassificationFailure,
    ClassificationResult,
)
from coastwatch.core.config import Settings, settings
from coastwatch.core.errors import PersistenceConflict, PipelineFault
from coastwatch.models.report import PENDING, VERIFIED, ReportStatus
from coastwatch.services.geofence import BoundingBox, is_within_region
from coastwatch.services.report_store import report_coordinates

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    async def classify(
        self, media_url: str, candidate_labels: Sequence[str]
    ) -> ClassificationResult: ...


class VerificationStore(Protocol):
    async def update_if_status_equals(self, report_id, expected_status: str, fields: dict) -> None: ...
    async def record_score(self, report_id, score: int) -> None: ...


@dataclass(frozen=True)
class ScoringConfig:
    region: BoundingBox
    candidate_labels: tuple[str, ...]
    geo_gate_points: int = 30
    classification_points: int = 70
    classification_threshold: float = 0.70
    verification_threshold: int = 85

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> ScoringConfig:
        return cls(
            region=BoundingBox.from_settings(cfg),
            candidate_labels=tuple(cfg.candidate_labels),
            geo_gate_points=cfg.geo_gate_points,
            classification_points=cfg.classification_points,
            classification_threshold=cfg.classification_threshold,
            verification_threshold=cfg.verification_threshold,
        )

    @property
    def max_score(self) -> int:
        return self.geo_gate_points + self.classification_points


@dataclass
class ScoringOutcome:
    """What one run decided and what it managed to write."""
    report_id: str
    geo_passed: bool = False
    classification: Optional[ClassificationResult] = None
    geo_points: int = 0
    classification_points: int = 0
    status: ReportStatus = PENDING
    persisted: bool = False
    conflict: bool = False
    fault: Optional[str] = None

    @property
    def score(self) -> int:
        return self.geo_points + self.classification_points


# ── Pure scoring functions ────────────────────────────────────────────────────

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def classification_points(result: Optional[ClassificationResult], config: ScoringConfig) -> int:
    """Gate B points for a classifier result (0 for failures and weak matches)."""
    if not isinstance(result, Classification):
        return 0
    if result.top_label not in config.candidate_labels:
        return 0
    if result.top_score <= config.classification_threshold:
        return 0
    return _round_half_up(result.top_score * config.classification_points)


def compose_score(
    geo_passed: bool,
    result: Optional[ClassificationResult],
    config: ScoringConfig,
) -> int:
    """Gate A + Gate B, clamped to [0, max_score]."""
    if not geo_passed:
        return 0
    score = config.geo_gate_points + classification_points(result, config)
    return max(0, min(config.max_score, score))


def decide_status(score: int, config: ScoringConfig) -> ReportStatus:
    return VERIFIED if score >= config.verification_threshold else PENDING


# ── Engine ────────────────────────────────────────────────────────────────────

class VerificationEngine:
    def __init__(
        self,
        store: VerificationStore,
        classifier: Classifier,
        config: ScoringConfig,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.config = config

    async def run(self, report: dict) -> ScoringOutcome:
        report_id = str(report.get("_id"))
        outcome = ScoringOutcome(report_id=report_id)
        logger.info("Starting verification for report %s", report_id)

        try:
            await self._run_gates(report, outcome)
        except Exception as exc:
            fault = PipelineFault(report_id, exc)
            outcome.fault = str(fault)
            logger.exception("Verification pipeline fault for report %s", report_id)
            await self._save_partial(outcome)

        return outcome

    async def _run_gates(self, report: dict, outcome: ScoringOutcome) -> None:
        config = self.config

        # Gate A
        lon, lat = report_coordinates(report)
        outcome.geo_passed = is_within_region(lon, lat, config.region)
        if not outcome.geo_passed:
            logger.info(
                "Report %s outside region (%.4f, %.4f); skipping classification",
                outcome.report_id, lon, lat,
            )
            return
        outcome.geo_points = config.geo_gate_points

        # Gate B
        outcome.classification = await self.classifier.classify(
            report["media_url"], config.candidate_labels
        )
        if isinstance(outcome.classification, ClassificationFailure):
            logger.warning(
                "Classification failed for report %s: %s",
                outcome.report_id, outcome.classification.reason,
            )
        outcome.classification_points = classification_points(outcome.classification, config)

        score = compose_score(outcome.geo_passed, outcome.classification, config)
        outcome.status = decide_status(score, config)
        logger.info("Report %s scored %d (%s)", outcome.report_id, score, outcome.status)

        await self._persist(outcome, score)

    async def _persist(self, outcome: ScoringOutcome, score: int) -> None:
        fields: dict = {
            "confidence_score": score,
            "scored_at": datetime.now(tz=timezone.utc),
        }
        if outcome.status != PENDING:
            fields["status"] = outcome.status

        try:
            await self.store.update_if_status_equals(outcome.report_id, PENDING, fields)
        except PersistenceConflict as exc:
            outcome.conflict = True
            logger.warning("%s; recording score %d only", exc, score)
            await self.store.record_score(outcome.report_id, score)
            return

        outcome.persisted = True
        if outcome.status == VERIFIED:
            logger.info("Report %s auto-verified with score %d", outcome.report_id, score)

    async def _save_partial(self, outcome: ScoringOutcome) -> None:
        """Best-effort write of a partial score; status is left alone."""
        outcome.status = PENDING
        if outcome.score <= 0:
            return
        try:
            await self.store.update_if_status_equals(
                outcome.report_id,
                PENDING,
                {"confidence_score": outcome.score, "scored_at": datetime.now(tz=timezone.utc)},
            )
        except Exception as exc:
            logger.warning("Could not save partial score for report %s: %s", outcome.report_id, exc)
