"""
scheme_store.py — Read access to the `gov_schemes` collection.
"""

from typing import Any

from coastwatch.models.scheme import GovSchemeOut

COLLECTION = "gov_schemes"


def doc_to_scheme(doc: dict) -> GovSchemeOut:
    return GovSchemeOut(
        id=str(doc["_id"]),
        title=doc["title"],
        description=doc.get("description", ""),
        eligibility=doc.get("eligibility", ""),
        official_link=doc.get("official_link", ""),
        category=doc.get("category", ""),
    )


class SchemeStore:
    def __init__(self, db: Any) -> None:
        self._col = db[COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("category", 1)])

    async def list_by_category(self) -> list[dict]:
        cursor = self._col.find({}).sort("category", 1)
        return [doc async for doc in cursor]
