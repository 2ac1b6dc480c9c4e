"""
test_reports.py — Tests for /api/v1/reports routes.

The verification queue is overridden with an engine whose classifier is a
stub, so scoring is deterministic. Background runs are awaited with
verification_queue.drain().
"""

import asyncio
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from coastwatch.ai.classifier_client import Classification, ClassificationFailure
from coastwatch.services.geofence import BoundingBox
from coastwatch.services.report_store import ReportStore
from coastwatch.services.verification import ScoringConfig, VerificationEngine
from coastwatch.services.verification_queue import VerificationQueue, drain

CONFIG = ScoringConfig(
    region=BoundingBox(min_lon=68.0, min_lat=6.0, max_lon=98.0, max_lat=24.0),
    candidate_labels=("ocean", "waves", "beach", "water", "coast", "sea", "surge", "flood"),
)


class StubClassifier:
    def __init__(self, result):
        self.result = result
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def classify(self, media_url, candidate_labels):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.result


@pytest.fixture()
def classifier():
    return StubClassifier(Classification("waves", 0.9))


@pytest.fixture()
async def reports_client(db_client, fake_db, classifier):
    from coastwatch.main import app
    from coastwatch.routes.reports import get_verification_queue

    app.dependency_overrides[get_verification_queue] = lambda: VerificationQueue(
        VerificationEngine(ReportStore(fake_db), classifier, CONFIG)
    )
    yield db_client
    await drain()


SAMPLE_REPORT = {
    "longitude": 80.2707,
    "latitude": 13.0827,
    "description": "Waves crossing the sea wall at Marina beach",
    "media_url": "https://media.example/marina.jpg",
    "hazard_kind": "High Waves",
    "submitted_by": "fisher-42",
}


async def _submit(client, **overrides):
    return await client.post("/api/v1/reports", json={**SAMPLE_REPORT, **overrides})


class TestSubmitReport:

    async def test_returns_201_with_pending_unscored_report(self, reports_client):
        r = await _submit(reports_client)
        assert r.status_code == 201
        data = r.json()
        assert len(data["report_id"]) == 24
        report = data["report"]
        assert report["status"] == "pending"
        assert report["confidence_score"] == 0
        assert report["coordinates"] == [80.2707, 13.0827]
        assert report["submitted_by"] == "fisher-42"

    async def test_submitted_by_defaults_to_anonymous(self, reports_client):
        payload = {k: v for k, v in SAMPLE_REPORT.items() if k != "submitted_by"}
        r = await reports_client.post("/api/v1/reports", json=payload)
        assert r.json()["report"]["submitted_by"] == "anonymous"

    async def test_background_run_auto_verifies(self, reports_client):
        report_id = (await _submit(reports_client)).json()["report_id"]
        await drain()

        data = (await reports_client.get(f"/api/v1/reports/{report_id}")).json()
        assert data["confidence_score"] == 93
        assert data["status"] == "verified"

    async def test_response_does_not_wait_for_scoring(self, reports_client, classifier):
        classifier.gate = asyncio.Event()

        r = await _submit(reports_client)
        assert r.status_code == 201
        report_id = r.json()["report_id"]

        mid = (await reports_client.get(f"/api/v1/reports/{report_id}")).json()
        assert mid["confidence_score"] == 0

        classifier.gate.set()
        await drain()
        done = (await reports_client.get(f"/api/v1/reports/{report_id}")).json()
        assert done["confidence_score"] == 93

    async def test_outside_region_stays_unscored(self, reports_client, classifier):
        # New Delhi — inland
        report_id = (await _submit(reports_client, longitude=77.1025, latitude=28.7041)).json()["report_id"]
        await drain()

        data = (await reports_client.get(f"/api/v1/reports/{report_id}")).json()
        assert data["confidence_score"] == 0
        assert data["status"] == "pending"
        assert classifier.calls == 0

    async def test_classifier_failure_still_accepts_report(self, reports_client, classifier):
        classifier.result = ClassificationFailure("HTTP 503")
        r = await _submit(reports_client)
        assert r.status_code == 201
        await drain()
        data = (await reports_client.get(f"/api/v1/reports/{r.json()['report_id']}")).json()
        assert data["confidence_score"] == 30
        assert data["status"] == "pending"


class TestSubmitValidation:

    async def test_blank_description_400(self, reports_client):
        r = await _submit(reports_client, description="   ")
        assert r.status_code == 400

    async def test_out_of_range_coordinates_400(self, reports_client):
        r = await _submit(reports_client, longitude=200.0)
        assert r.status_code == 400

    async def test_nan_coordinates_400(self, reports_client):
        body = (
            '{"longitude": NaN, "latitude": 13.0, "description": "waves",'
            ' "media_url": "https://m/x.jpg", "hazard_kind": "Tsunami"}'
        )
        r = await reports_client.post(
            "/api/v1/reports", content=body, headers={"Content-Type": "application/json"}
        )
        assert r.status_code == 400

    async def test_missing_field_422(self, reports_client):
        payload = {k: v for k, v in SAMPLE_REPORT.items() if k != "media_url"}
        r = await reports_client.post("/api/v1/reports", json=payload)
        assert r.status_code == 422

    async def test_unknown_hazard_kind_422(self, reports_client):
        r = await _submit(reports_client, hazard_kind="Volcano")
        assert r.status_code == 422

    async def test_rejected_submission_never_scored(self, reports_client, classifier):
        await _submit(reports_client, description="")
        await drain()
        assert classifier.calls == 0


class TestListReports:

    async def test_newest_first(self, reports_client, fake_db):
        store = ReportStore(fake_db)
        for day, text in ((1, "older"), (3, "newest"), (2, "middle")):
            await store.insert({
                "location": {"type": "Point", "coordinates": [80.0, 13.0]},
                "description": text,
                "media_url": "https://m/x.jpg",
                "hazard_kind": "Other",
                "status": "pending",
                "confidence_score": 0,
                "submitted_by": "anonymous",
                "created_at": datetime(2025, 8, day, tzinfo=timezone.utc),
            })
        data = (await reports_client.get("/api/v1/reports")).json()
        assert [r["description"] for r in data] == ["newest", "middle", "older"]

    async def test_analyst_sees_only_verified(self, reports_client):
        verified = (await _submit(reports_client)).json()["report_id"]
        inland = (await _submit(reports_client, longitude=77.1, latitude=28.7)).json()["report_id"]
        await drain()

        ids = [r["id"] for r in (await reports_client.get("/api/v1/reports?role=analyst")).json()]
        assert verified in ids
        assert inland not in ids

    async def test_analyst_role_overrides_status_filter(self, reports_client):
        await _submit(reports_client, longitude=77.1, latitude=28.7)
        await drain()
        r = await reports_client.get("/api/v1/reports?role=analyst&status=pending")
        assert r.json() == []

    async def test_admin_sees_everything(self, reports_client):
        await _submit(reports_client)
        await _submit(reports_client, longitude=77.1, latitude=28.7)
        await drain()
        r = await reports_client.get("/api/v1/reports?role=admin")
        assert len(r.json()) == 2

    async def test_status_filter(self, reports_client):
        await _submit(reports_client)
        await _submit(reports_client, longitude=77.1, latitude=28.7)
        await drain()
        pending = (await reports_client.get("/api/v1/reports?status=pending")).json()
        assert [r["status"] for r in pending] == ["pending"]

    async def test_no_database_returns_empty_list(self, client):
        r = await client.get("/api/v1/reports")
        assert r.status_code == 200
        assert r.json() == []


class TestGetReport:

    async def test_unknown_id_404(self, reports_client):
        r = await reports_client.get(f"/api/v1/reports/{ObjectId()}")
        assert r.status_code == 404

    async def test_invalid_id_422(self, reports_client):
        r = await reports_client.get("/api/v1/reports/not-an-objectid")
        assert r.status_code == 422


class TestUpdateStatus:

    async def test_manual_reject(self, reports_client):
        report_id = (await _submit(reports_client)).json()["report_id"]
        await drain()

        r = await reports_client.patch(f"/api/v1/reports/{report_id}/status", json={"status": "rejected"})
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "rejected"
        # the automatic score is left as it was
        assert data["confidence_score"] == 93

    async def test_manual_decision_beats_late_verification(self, reports_client, classifier):
        classifier.gate = asyncio.Event()
        report_id = (await _submit(reports_client)).json()["report_id"]

        r = await reports_client.patch(f"/api/v1/reports/{report_id}/status", json={"status": "rejected"})
        assert r.status_code == 200

        classifier.gate.set()
        await drain()

        data = (await reports_client.get(f"/api/v1/reports/{report_id}")).json()
        assert data["status"] == "rejected"
        assert data["confidence_score"] == 93

    async def test_staff_can_move_back_to_pending(self, reports_client):
        report_id = (await _submit(reports_client)).json()["report_id"]
        await drain()
        r = await reports_client.patch(f"/api/v1/reports/{report_id}/status", json={"status": "pending"})
        assert r.json()["status"] == "pending"

    async def test_invalid_status_422(self, reports_client):
        report_id = (await _submit(reports_client)).json()["report_id"]
        r = await reports_client.patch(f"/api/v1/reports/{report_id}/status", json={"status": "maybe"})
        assert r.status_code == 422

    async def test_unknown_report_404(self, reports_client):
        r = await reports_client.patch(f"/api/v1/reports/{ObjectId()}/status", json={"status": "verified"})
        assert r.status_code == 404


class TestHotspotsAndStats:

    async def test_hotspots_endpoint(self, reports_client):
        await _submit(reports_client, longitude=80.001, latitude=15.002)
        await _submit(reports_client, longitude=80.004, latitude=15.001)
        await _submit(reports_client, longitude=72.8777, latitude=19.0760)
        await drain()

        r = await reports_client.get("/api/v1/reports/hotspots")
        assert r.status_code == 200
        assert r.json() == [{"center": [80.0, 15.0], "count": 2}]

    async def test_hotspots_ignore_unverified(self, reports_client, classifier):
        classifier.result = Classification("waves", 0.5)
        await _submit(reports_client, longitude=80.001, latitude=15.002)
        await _submit(reports_client, longitude=80.004, latitude=15.001)
        await drain()
        assert (await reports_client.get("/api/v1/reports/hotspots")).json() == []

    async def test_stats(self, reports_client):
        await _submit(reports_client)
        await _submit(reports_client, longitude=77.1, latitude=28.7, hazard_kind="Tsunami")
        await drain()

        data = (await reports_client.get("/api/v1/reports/stats")).json()
        assert data["total"] == 2
        assert data["by_status"] == {"pending": 1, "verified": 1, "rejected": 0}
        assert data["by_hazard_kind"] == {"High Waves": 1, "Tsunami": 1}
        assert sum(p["count"] for p in data["timeline"]) == 2
