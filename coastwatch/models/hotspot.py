"""
hotspot.py — Derived hotspot clusters over verified reports.

Clusters are recomputed on every query and never stored.
"""

from pydantic import BaseModel, Field


class HotspotCluster(BaseModel):
    """A grid cell holding more than one verified report."""

    center: tuple[float, float]   # (longitude, latitude) rounded to the grid
    count: int = Field(..., ge=1)
