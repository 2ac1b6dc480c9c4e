"""
errors.py — Error taxonomy for report submission and the verification pipeline.

InvalidInput          — rejected synchronously at submission (HTTP 400)
PersistenceConflict   — automatic write skipped because a human already decided
PipelineFault         — anything else going wrong inside a scoring run

Classification failures are not exceptions: the classifier client returns a
ClassificationFailure value (see coastwatch/ai/classifier_client.py) so the engine
can score it as zero points.
"""


class CoastWatchError(Exception):
    """Base class for domain errors."""


class InvalidInput(CoastWatchError, ValueError):
    """Malformed coordinates or missing required report fields."""


class PersistenceConflict(CoastWatchError):
    """A status-conditioned update matched no document."""

    def __init__(self, report_id: str, expected_status: str):
        super().__init__(
            f"Report {report_id} is no longer {expected_status!r}; automatic update skipped"
        )
        self.report_id = report_id
        self.expected_status = expected_status


class PipelineFault(CoastWatchError):
    """Unexpected failure during a verification run."""

    def __init__(self, report_id: str, cause: BaseException):
        super().__init__(f"Verification failed for report {report_id}: {cause!r}")
        self.report_id = report_id
        self.cause = cause
