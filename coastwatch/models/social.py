"""
social.py — Pydantic schemas for ingested news / forum items.

RawSocialItem        — normalised scraper output (or manual POST body)
SocialItemOut        — stored item with NLP fields filled in
SocialIngestResponse — result of a single ingest (created or duplicate)
ScrapeSummary        — counts reported by a scraper run
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


SocialSource = Literal["News", "Forum"]


class RawSocialItem(BaseModel):
    source: SocialSource
    title: str = Field(..., min_length=1, max_length=1000)
    snippet: str = Field(default="", max_length=5000)
    url: str = Field(..., min_length=5, max_length=3000)
    published_at: datetime


class SocialItemOut(BaseModel):
    id: str
    source: SocialSource
    title: str
    snippet: str
    url: str
    published_at: datetime
    sentiment_score: float = 0.0
    keywords: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)


class SocialIngestResponse(BaseModel):
    duplicate: bool
    item: Optional[SocialItemOut] = None


class ScrapeSummary(BaseModel):
    fetched: int = 0
    created: int = 0
    duplicates: int = 0
    failed_items: int = 0
    failed_sources: list[str] = Field(default_factory=list)
