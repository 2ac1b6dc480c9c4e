"""
ZeroShotImageClassifier — Async wrapper around a hosted zero-shot image classifier.

Default backend: Hugging Face Inference API, openai/clip-vit-large-patch14.
The image referenced by a report is downloaded from the media host, then sent
together with a candidate-label vocabulary ("ocean", "waves", "flood", ...);
the classifier answers with a score per label.

Failure policy: at most one attempt per call. Network errors, timeouts,
non-2xx responses and malformed bodies all come back as a
ClassificationFailure value — classify() never raises. The verification
engine scores a failure as zero points and carries on.

Runtime modes (AI_MOCK_MODE env var):
  - MOCK (default): deterministic canned result, no network.
  - REAL: needs HUGGING_FACE_API_KEY.
"""

import base64
import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence, Union

import httpx

from coastwatch.core.config import settings

logger = logging.getLogger(__name__)

# Canned mock score: high enough to clear the label threshold, low enough
# that mock-mode reports still land in manual review (30 + 53 = 83 < 85).
_MOCK_SCORE = 0.75


@dataclass(frozen=True)
class Classification:
    top_label: str
    top_score: float


@dataclass(frozen=True)
class ClassificationFailure:
    reason: str


ClassificationResult = Union[Classification, ClassificationFailure]


def _parse_scores(payload: Any) -> Classification | None:
    """
    Pick the best {label, score} entry from the classifier response.

    The API returns a list sorted by score, but the maximum is taken
    explicitly rather than trusting the order.
    """
    if not isinstance(payload, list) or not payload:
        return None
    best: Classification | None = None
    for entry in payload:
        if not isinstance(entry, dict):
            return None
        label, score = entry.get("label"), entry.get("score")
        if not isinstance(label, str) or isinstance(score, bool) or not isinstance(score, (int, float)):
            return None
        # scores are probabilities; anything else is a broken payload
        if not math.isfinite(score) or not 0.0 <= score <= 1.0:
            return None
        if best is None or score > best.top_score:
            best = Classification(top_label=label, top_score=float(score))
    return best


class ZeroShotImageClassifier:
    """
    Thin async client for one zero-shot image classification call.

    Pass `transport` to plug in an httpx.MockTransport in tests.
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        mock_mode: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url or settings.classifier_url
        self.api_key = settings.hugging_face_api_key if api_key is None else api_key
        self.timeout = settings.classifier_timeout_seconds if timeout is None else timeout
        self.mock_mode = settings.ai_mock_mode if mock_mode is None else mock_mode
        self._transport = transport

        if not self.mock_mode and not self.api_key:
            logger.warning(
                "HUGGING_FACE_API_KEY not set — image classification disabled. "
                "Reports will only receive geo-fence points."
            )

    async def classify(
        self,
        media_url: str,
        candidate_labels: Sequence[str],
    ) -> ClassificationResult:
        """
        Classify the image at *media_url* against *candidate_labels*.

        Returns:
            Classification(top_label, top_score) on success,
            ClassificationFailure(reason) otherwise.
        """
        if self.mock_mode:
            label = candidate_labels[0] if candidate_labels else "ocean"
            return Classification(top_label=label, top_score=_MOCK_SCORE)

        if not self.api_key:
            return ClassificationFailure("classifier API key not configured")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                media = await client.get(media_url)
                media.raise_for_status()

                response = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "inputs": base64.b64encode(media.content).decode("ascii"),
                        "parameters": {"candidate_labels": list(candidate_labels)},
                    },
                )
                response.raise_for_status()
                payload = response.json()

        except httpx.HTTPStatusError as exc:
            logger.error(
                "Classifier HTTP error: %s — %s",
                exc.response.status_code,
                exc.response.text[:200],
            )
            return ClassificationFailure(f"HTTP {exc.response.status_code} from {exc.request.url.host}")
        except httpx.TimeoutException:
            logger.error("Classifier request timed out after %.1fs", self.timeout)
            return ClassificationFailure("timeout")
        except ValueError as exc:
            # response.json() on a non-JSON body
            logger.error("Classifier returned a non-JSON body: %s", exc)
            return ClassificationFailure("malformed response body")
        except Exception as exc:
            logger.error("Classifier request failed: %s", exc)
            return ClassificationFailure(f"request failed: {exc.__class__.__name__}")

        result = _parse_scores(payload)
        if result is None:
            logger.error("Classifier returned an unusable payload: %.200r", payload)
            return ClassificationFailure("malformed response body")

        logger.debug("Classifier top match: %s (%.3f)", result.top_label, result.top_score)
        return result


# Module-level singleton
classifier_client = ZeroShotImageClassifier()
