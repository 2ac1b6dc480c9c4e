"""
verification_queue.py — Fire-and-forget submission of verification runs.

The reports route calls enqueue() right after the insert and responds 201
without waiting. Each run is an independent asyncio task on the server's
event loop; there is no worker pool and no cancellation path. If the process
dies mid-run, the report simply stays pending with score 0 for manual review.

Task references live in a module-level set until they finish, otherwise the
event loop could garbage-collect a running task.
"""

import asyncio
import logging

from coastwatch.services.verification import ScoringOutcome, VerificationEngine

logger = logging.getLogger(__name__)

_inflight: set[asyncio.Task] = set()


class VerificationQueue:
    def __init__(self, engine: VerificationEngine) -> None:
        self.engine = engine

    def enqueue(self, report: dict) -> "asyncio.Task[ScoringOutcome]":
        """Schedule a verification run for *report* and return immediately."""
        task = asyncio.create_task(
            self.engine.run(report),
            name=f"verify-report-{report.get('_id')}",
        )
        _inflight.add(task)
        task.add_done_callback(_inflight.discard)
        logger.debug("Queued verification for report %s (%d in flight)", report.get("_id"), len(_inflight))
        return task


def inflight_count() -> int:
    return len(_inflight)


async def drain() -> list[ScoringOutcome]:
    """Wait for every in-flight run to finish (shutdown, tests)."""
    if not _inflight:
        return []
    results = await asyncio.gather(*list(_inflight), return_exceptions=True)
    return [r for r in results if isinstance(r, ScoringOutcome)]
