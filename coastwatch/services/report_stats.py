"""
report_stats.py — Dashboard aggregates over stored reports.

Feeds the status pie, the hazard-kind breakdown and the daily timeline
chart. Pure computation over already-loaded documents.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable

from coastwatch.models.report import ReportStats, TimelinePoint

_STATUSES = ("pending", "verified", "rejected")


def _day(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%d")


def summarize_reports(reports: Iterable[dict]) -> ReportStats:
    by_status: Counter[str] = Counter({s: 0 for s in _STATUSES})
    by_kind: Counter[str] = Counter()
    by_day: Counter[str] = Counter()
    total = 0

    for doc in reports:
        total += 1
        by_status[doc.get("status", "pending")] += 1
        by_kind[doc.get("hazard_kind", "Other")] += 1
        created = doc.get("created_at")
        if isinstance(created, datetime):
            by_day[_day(created)] += 1

    return ReportStats(
        total=total,
        by_status=dict(by_status),
        by_hazard_kind=dict(by_kind),
        timeline=[TimelinePoint(date=d, count=by_day[d]) for d in sorted(by_day)],
    )
