"""
MongoDB lifecycle for CoastWatch (Motor, async).

One DatabaseClient instance lives for the whole process. Routes never touch
it directly; they receive the database through the get_db dependency, which
is also the seam tests override with an in-memory double.

Collections:
  reports       — hazard reports (2dsphere index on `location`)
  social_items  — ingested news / forum items (unique index on `url`)
  gov_schemes   — support schemes listed in the app (read-only)

Opened in the FastAPI lifespan, closed on shutdown. If Atlas cannot be
reached the API still starts: list endpoints come back empty and write
endpoints answer 503.
"""

import logging
import re

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from coastwatch.core.config import settings
from coastwatch.services.report_store import ReportStore
from coastwatch.services.scheme_store import SchemeStore
from coastwatch.services.social_ingest import SocialStore

logger = logging.getLogger(__name__)

_SERVER_SELECTION_TIMEOUT_MS = 5000


class DatabaseClient:
    """Motor client plus the selected database; both None while disconnected."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    @property
    def connected(self) -> bool:
        return self.db is not None


db_client = DatabaseClient()


async def _ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await ReportStore(db).ensure_indexes()
    await SocialStore(db).ensure_indexes()
    await SchemeStore(db).ensure_indexes()


async def connect_to_mongo() -> None:
    """Open the connection, ping it and create indexes. Never raises."""
    logger.info("Connecting to MongoDB at %s", _redact_uri(settings.mongo_uri))
    try:
        # certifi bundle: Atlas TLS on hosts without the right system CAs
        client = AsyncIOMotorClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=_SERVER_SELECTION_TIMEOUT_MS,
            tlsCAFile=certifi.where(),
        )
        await client.admin.command("ping")
    except Exception as exc:
        logger.warning("MongoDB unreachable (%s); starting without a database", exc)
        db_client.client = None
        db_client.db = None
        return

    db_client.client = client
    db_client.db = client[settings.mongo_db_name]
    logger.info("MongoDB connection established (db: %s)", settings.mongo_db_name)

    try:
        await _ensure_indexes(db_client.db)
    except Exception as exc:
        logger.warning("Index creation failed: %s", exc)


async def close_mongo_connection() -> None:
    if db_client.client is not None:
        db_client.client.close()
        logger.info("MongoDB connection closed")


def get_db() -> AsyncIOMotorDatabase | None:
    """FastAPI dependency. None when MongoDB is unavailable."""
    return db_client.db


def _redact_uri(uri: str) -> str:
    """Strip credentials from URI before logging."""
    return re.sub(r"://[^:]+:[^@]+@", "://<redacted>@", uri)
