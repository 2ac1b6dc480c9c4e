"""
schemes.py — Government scheme listing for the mobile app.

Routes:
  GET /api/v1/schemes  — every scheme, grouped by category (A→Z)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from coastwatch.core.database import get_db
from coastwatch.models.scheme import GovSchemeOut
from coastwatch.services.scheme_store import SchemeStore, doc_to_scheme

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/schemes", tags=["schemes"])


def get_scheme_store(db=Depends(get_db)) -> Optional[SchemeStore]:
    return SchemeStore(db) if db is not None else None


@router.get("", response_model=list[GovSchemeOut])
async def list_schemes(store: Optional[SchemeStore] = Depends(get_scheme_store)):
    if store is None:
        return []

    items = []
    for doc in await store.list_by_category():
        try:
            items.append(doc_to_scheme(doc))
        except Exception as exc:
            logger.warning("Skipping malformed scheme doc: %s", exc)
    return items
