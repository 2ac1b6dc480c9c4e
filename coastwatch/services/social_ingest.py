"""
social_ingest.py — Store news / forum items with their NLP signals.

Natural key: `url`. Items are written once and never mutated. The insert is
a single upsert with $setOnInsert, so a duplicate url is a no-op even when
two scrapers race on the same link; the unique index on `url` backs it up.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

from coastwatch.models.social import RawSocialItem, SocialItemOut
from coastwatch.services.text_analysis import analyze

logger = logging.getLogger(__name__)

COLLECTION = "social_items"


@dataclass(frozen=True)
class DuplicateSkipped:
    url: str


IngestResult = Union[SocialItemOut, DuplicateSkipped]


def doc_to_social_item(doc: dict) -> SocialItemOut:
    return SocialItemOut(
        id=str(doc["_id"]),
        source=doc.get("source", "News"),
        title=doc.get("title", ""),
        snippet=doc.get("snippet", ""),
        url=doc["url"],
        published_at=doc.get("published_at", datetime.now(tz=timezone.utc)),
        sentiment_score=doc.get("sentiment_score", 0.0),
        keywords=doc.get("keywords", []),
        hashtags=doc.get("hashtags", []),
    )


class SocialStore:
    def __init__(self, db: Any) -> None:
        self._col = db[COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index("url", unique=True)
        await self._col.create_index([("published_at", -1)])

    async def insert_if_absent(self, doc: dict) -> Any | None:
        """Insert *doc* unless its url exists. Returns the new _id, or None for a duplicate."""
        result = await self._col.update_one(
            {"url": doc["url"]},
            {"$setOnInsert": doc},
            upsert=True,
        )
        return result.upserted_id

    async def list_recent(self, limit: int = 50) -> list[dict]:
        cursor = self._col.find({}).sort("published_at", -1).limit(limit)
        return [doc async for doc in cursor]


async def ingest_social_item(store: SocialStore, raw: RawSocialItem) -> IngestResult:
    text = f"{raw.title}. {raw.snippet}" if raw.snippet else raw.title
    signals = analyze(text)

    doc = {
        **raw.model_dump(),
        "sentiment_score": signals.sentiment_score,
        "keywords": signals.keywords,
        "hashtags": signals.hashtags,
        "ingested_at": datetime.now(tz=timezone.utc),
    }
    new_id = await store.insert_if_absent(doc)
    if new_id is None:
        logger.debug("Skipping duplicate social item %s", raw.url)
        return DuplicateSkipped(url=raw.url)

    return doc_to_social_item({**doc, "_id": new_id})
