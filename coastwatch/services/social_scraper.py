"""
social_scraper.py — Pull hazard chatter from GNews and Reddit.

Sources:
  GNews   GET https://gnews.io/api/v4/search       → source "News"
  Reddit  GET https://www.reddit.com/r/{sub}/search.json  → source "Forum"

Each upstream request is paced by rate_limited(), a fixed courtesy delay
between items. A failing source is logged and skipped; it never stops the
other sources. Everything fetched goes through ingest_social_item(), which
drops duplicate urls.

Triggered from POST /api/v1/social/scrape as a background task.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, TypeVar

import httpx
from pydantic import ValidationError

from coastwatch.core.config import settings
from coastwatch.models.social import RawSocialItem, ScrapeSummary
from coastwatch.services.social_ingest import DuplicateSkipped, SocialStore, ingest_social_item

logger = logging.getLogger(__name__)

GNEWS_SEARCH_URL = "https://gnews.io/api/v4/search"
REDDIT_BASE_URL = "https://www.reddit.com"
_SNIPPET_LEN = 200
_USER_AGENT = "Mozilla/5.0 (compatible; CoastWatchBot/1.0)"

T = TypeVar("T")


async def rate_limited(items: Iterable[T], delay: float) -> AsyncIterator[T]:
    """Yield *items* with *delay* seconds between consecutive items."""
    first = True
    for item in items:
        if not first and delay > 0:
            await asyncio.sleep(delay)
        first = False
        yield item


def _parse_gnews(payload: dict) -> list[RawSocialItem]:
    items = []
    for article in payload.get("articles") or []:
        try:
            items.append(RawSocialItem(
                source="News",
                title=article["title"],
                snippet=article.get("description") or "",
                url=article["url"],
                published_at=article["publishedAt"],
            ))
        except (KeyError, ValidationError) as exc:
            logger.debug("Skipping malformed GNews article: %s", exc)
    return items


def _parse_reddit(payload: dict) -> list[RawSocialItem]:
    items = []
    for child in (payload.get("data") or {}).get("children") or []:
        post = child.get("data") or {}
        try:
            items.append(RawSocialItem(
                source="Forum",
                title=post["title"],
                snippet=(post.get("selftext") or "")[:_SNIPPET_LEN],
                url=f"{REDDIT_BASE_URL}{post['permalink']}",
                published_at=datetime.fromtimestamp(post["created_utc"], tz=timezone.utc),
            ))
        except (KeyError, TypeError, ValidationError) as exc:
            logger.debug("Skipping malformed Reddit post: %s", exc)
    return items


async def fetch_gnews(client: httpx.AsyncClient) -> list[RawSocialItem]:
    if not settings.gnews_api_key:
        logger.warning("GNEWS_API_KEY not set — skipping GNews")
        return []
    response = await client.get(
        GNEWS_SEARCH_URL,
        params={"q": settings.gnews_query, "lang": "en", "country": "in", "token": settings.gnews_api_key},
    )
    response.raise_for_status()
    return _parse_gnews(response.json())


async def fetch_subreddit(client: httpx.AsyncClient, subreddit: str) -> list[RawSocialItem]:
    response = await client.get(
        f"{REDDIT_BASE_URL}/r/{subreddit}/search.json",
        params={"q": settings.gnews_query, "restrict_sr": "on", "sort": "new", "limit": 10},
    )
    response.raise_for_status()
    return _parse_reddit(response.json())


async def run_all_scrapers(
    store: SocialStore,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ScrapeSummary:
    """Run every source in turn and ingest what they return."""
    logger.info("Running social scrapers")
    summary = ScrapeSummary()

    sources = [("gnews", None)] + [(f"r/{sub}", sub) for sub in settings.reddit_subreddits]

    async with httpx.AsyncClient(
        timeout=15.0,
        headers={"User-Agent": _USER_AGENT},
        transport=transport,
    ) as client:
        async for name, subreddit in rate_limited(sources, settings.scrape_delay_seconds):
            try:
                if subreddit is None:
                    items = await fetch_gnews(client)
                else:
                    items = await fetch_subreddit(client, subreddit)
            except httpx.HTTPStatusError as exc:
                logger.error("%s returned %s", name, exc.response.status_code)
                summary.failed_sources.append(name)
                continue
            except Exception as exc:
                logger.error("Fetching %s failed: %s", name, exc)
                summary.failed_sources.append(name)
                continue

            summary.fetched += len(items)
            for raw in items:
                try:
                    result = await ingest_social_item(store, raw)
                except Exception as exc:
                    logger.error("Storing %s item %s failed: %s", name, raw.url, exc)
                    summary.failed_items += 1
                    continue
                if isinstance(result, DuplicateSkipped):
                    summary.duplicates += 1
                else:
                    summary.created += 1

    logger.info(
        "Scrapers finished: fetched=%d created=%d duplicates=%d failed_items=%d failed=%s",
        summary.fetched, summary.created, summary.duplicates, summary.failed_items, summary.failed_sources,
    )
    return summary
