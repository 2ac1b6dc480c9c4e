"""
hotspots.py — Fixed-grid clustering of verified reports.

Each verified report is bucketed by rounding latitude and longitude
independently to `precision` decimal places (2 → cells of roughly 1 km).
Cells holding at least `min_count` reports (default 2: a single report is
not a hotspot) are emitted as HotspotCluster(center=(lon, lat), count).

This is a grid approximation, not density-based clustering: two reports a
few metres apart on either side of a cell boundary land in different cells.

Nothing is stored; every call recomputes from the reports collection.
Output is sorted by count (desc) then center so repeated calls over the
same data return identical lists.
"""

from collections import Counter
from typing import Iterable

from coastwatch.models.hotspot import HotspotCluster
from coastwatch.models.report import VERIFIED
from coastwatch.services.report_store import ReportStore, report_coordinates

DEFAULT_PRECISION = 2
DEFAULT_MIN_COUNT = 2


def grid_cell(longitude: float, latitude: float, precision: int = DEFAULT_PRECISION) -> tuple[float, float]:
    return round(longitude, precision), round(latitude, precision)


def cluster_verified(
    reports: Iterable[dict],
    precision: int = DEFAULT_PRECISION,
    min_count: int = DEFAULT_MIN_COUNT,
) -> list[HotspotCluster]:
    cells: Counter[tuple[float, float]] = Counter()
    for doc in reports:
        if doc.get("status") != VERIFIED:
            continue
        lon, lat = report_coordinates(doc)
        cells[grid_cell(lon, lat, precision)] += 1

    clusters = [
        HotspotCluster(center=center, count=count)
        for center, count in cells.items()
        if count >= min_count
    ]
    clusters.sort(key=lambda c: (-c.count, c.center))
    return clusters


async def compute_hotspots(
    store: ReportStore,
    precision: int = DEFAULT_PRECISION,
    min_count: int = DEFAULT_MIN_COUNT,
) -> list[HotspotCluster]:
    return cluster_verified(await store.find_verified(), precision, min_count)
