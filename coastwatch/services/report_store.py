"""
report_store.py — Persistence for hazard reports (Motor, `reports` collection).

Document shape:
  {
    "_id": ObjectId,
    "location": { "type": "Point", "coordinates": [lng, lat] },   ← 2dsphere
    "description": "...",
    "media_url": "https://...",
    "hazard_kind": "High Waves",
    "status": "pending" | "verified" | "rejected",
    "confidence_score": 0,
    "submitted_by": "anonymous",
    "created_at": ISODate,
    "scored_at": ISODate | null,
  }

The one write with product-visible race consequences is the automatic
verification result. update_if_status_equals() does it as a single
conditional update_one filtered on the current status, so a manual decision
that lands first is never overwritten.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from coastwatch.core.errors import PersistenceConflict
from coastwatch.models.report import ANONYMOUS, VERIFIED, ReportOut

logger = logging.getLogger(__name__)

COLLECTION = "reports"


def to_object_id(report_id: str | ObjectId) -> ObjectId:
    """Raises bson InvalidId (a ValueError) on malformed ids."""
    if isinstance(report_id, ObjectId):
        return report_id
    return ObjectId(report_id)


def report_coordinates(doc: dict) -> tuple[float, float]:
    lon, lat = doc["location"]["coordinates"]
    return lon, lat


def doc_to_report(doc: dict) -> ReportOut:
    return ReportOut(
        id=str(doc["_id"]),
        coordinates=report_coordinates(doc),
        description=doc.get("description", ""),
        media_url=doc.get("media_url", ""),
        hazard_kind=doc.get("hazard_kind", "Other"),
        status=doc.get("status", "pending"),
        confidence_score=doc.get("confidence_score", 0),
        submitted_by=doc.get("submitted_by") or ANONYMOUS,
        created_at=doc.get("created_at", datetime.now(tz=timezone.utc)),
        scored_at=doc.get("scored_at"),
    )


class ReportStore:
    """Async access to the reports collection."""

    def __init__(self, db: Any) -> None:
        self._col = db[COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("location", "2dsphere")])
        await self._col.create_index([("status", 1), ("created_at", -1)])

    async def insert(self, doc: dict) -> dict:
        result = await self._col.insert_one(doc)
        return {**doc, "_id": result.inserted_id}

    async def get(self, report_id: str | ObjectId) -> Optional[dict]:
        try:
            oid = to_object_id(report_id)
        except InvalidId:
            return None
        return await self._col.find_one({"_id": oid})

    async def list_reports(self, status: Optional[str] = None) -> list[dict]:
        """Reports newest first, optionally filtered by status."""
        query: dict = {}
        if status:
            query["status"] = status
        cursor = self._col.find(query).sort("created_at", -1)
        return [doc async for doc in cursor]

    async def find_verified(self) -> list[dict]:
        cursor = self._col.find({"status": VERIFIED})
        return [doc async for doc in cursor]

    async def set_status(self, report_id: str | ObjectId, status: str) -> Optional[dict]:
        """Manual override: unconditional status write, score untouched."""
        return await self._col.find_one_and_update(
            {"_id": to_object_id(report_id)},
            {"$set": {"status": status, "status_updated_at": datetime.now(tz=timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )

    async def update_if_status_equals(
        self,
        report_id: str | ObjectId,
        expected_status: str,
        fields: dict,
    ) -> None:
        """
        Apply *fields* only if the report's status is still *expected_status*.

        Raises PersistenceConflict when nothing matched (status moved on, or
        the report no longer exists).
        """
        result = await self._col.update_one(
            {"_id": to_object_id(report_id), "status": expected_status},
            {"$set": fields},
        )
        if result.matched_count == 0:
            raise PersistenceConflict(str(report_id), expected_status)

    async def record_score(self, report_id: str | ObjectId, score: int) -> None:
        """Audit write of the automatic score without touching status."""
        await self._col.update_one(
            {"_id": to_object_id(report_id)},
            {"$set": {"confidence_score": score, "scored_at": datetime.now(tz=timezone.utc)}},
        )
