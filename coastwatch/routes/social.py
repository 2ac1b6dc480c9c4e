"""
social.py — News / forum ingestion routes.

Routes:
  POST /api/v1/social/items   — ingest one item (201 created, 200 duplicate)
  GET  /api/v1/social/items   — latest 50 items, newest first
  POST /api/v1/social/scrape  — run GNews + Reddit scrapers in the background (202)

Every stored item carries sentiment_score, keywords and hashtags computed
by services/text_analysis.py at ingestion time.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response

from coastwatch.core.database import get_db
from coastwatch.core.rate_limit import limiter
from coastwatch.models.social import RawSocialItem, SocialIngestResponse, SocialItemOut
from coastwatch.services.social_ingest import (
    DuplicateSkipped,
    SocialStore,
    doc_to_social_item,
    ingest_social_item,
)
from coastwatch.services.social_scraper import run_all_scrapers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/social", tags=["social"])


def get_social_store(db=Depends(get_db)) -> Optional[SocialStore]:
    return SocialStore(db) if db is not None else None


@router.post("/items", response_model=SocialIngestResponse, status_code=201)
async def ingest_item(
    payload: RawSocialItem,
    response: Response,
    store: Optional[SocialStore] = Depends(get_social_store),
):
    """Store one item; a url seen before is skipped, not an error."""
    if store is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    result = await ingest_social_item(store, payload)
    if isinstance(result, DuplicateSkipped):
        response.status_code = 200
        return SocialIngestResponse(duplicate=True)
    return SocialIngestResponse(duplicate=False, item=result)


@router.get("/items", response_model=list[SocialItemOut])
async def list_items(
    limit: int = Query(default=50, ge=1, le=200),
    store: Optional[SocialStore] = Depends(get_social_store),
):
    if store is None:
        return []

    items = []
    for doc in await store.list_recent(limit=limit):
        try:
            items.append(doc_to_social_item(doc))
        except Exception as exc:
            logger.warning("Skipping malformed social item: %s", exc)
    return items


@router.post("/scrape", status_code=202)
@limiter.limit("2/minute")
async def trigger_scrape(
    request: Request,
    background_tasks: BackgroundTasks,
    store: Optional[SocialStore] = Depends(get_social_store),
):
    """Kick off the scrapers and return immediately."""
    if store is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    background_tasks.add_task(run_all_scrapers, store)
    return {"message": "Scraping process initiated in the background."}
