import base64
import logging
import mimetypes
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from ..errors import ClassifierError, ClassifierUnavailable, MalformedClassifierOutput
from .prompts import DEFAULT_PROMPT_VARIANT, get_prompt

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
FLAGGED_TOKEN = "FLAGGED"
QUOTA_STATUS = "RESOURCE_EXHAUSTED"


class Verdict(str, Enum):
    SAFE = "SAFE"
    FLAGGED = "FLAGGED"


def parse_verdict(text: str) -> Verdict:
    """FLAGGED iff the reply contains the token FLAGGED (any case); anything else is SAFE."""
    if FLAGGED_TOKEN in (text or "").upper():
        return Verdict.FLAGGED
    return Verdict.SAFE


@dataclass
class FrameResult:
    frame: str
    verdict: Optional[Verdict] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.verdict is None

    @property
    def label(self) -> str:
        return "ERROR" if self.is_error else self.verdict.value

    def as_dict(self) -> dict:
        data = {"frame": self.frame, "verdict": self.label}
        if self.error:
            data["error"] = self.error
        return data


class GeminiSafetyClassifier:
    """
    Client for a vision-capable Gemini model that labels one image as SAFE
    or FLAGGED.

    Consecutive requests are spaced by at least ``min_interval`` seconds.
    Network failures and quota errors are retried up to ``max_attempts``
    times in total, then surface as ``ClassifierUnavailable``.

    Args:
        api_key (str): Gemini API key.
        model (str): Model name, e.g. "gemini-2.5-flash".
        prompt (str): Moderation instruction sent with every image.
        endpoint (str): Base URL of the generative language API.
        timeout (float): Per-request timeout in seconds.
        min_interval (float): Minimum spacing between requests in seconds.
        max_attempts (int): Attempts per image for retryable failures.
        retry_backoff (float): Seconds added to the wait after each failed attempt.
        http_client (httpx.Client): Optional pre-built client (tests inject a
            ``httpx.MockTransport`` here). Owned by the caller when given.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        prompt: Optional[str] = None,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30.0,
        min_interval: float = 0.5,
        max_attempts: int = 2,
        retry_backoff: float = 2.0,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api_key = api_key
        self.model = model
        self.prompt = prompt or get_prompt(DEFAULT_PROMPT_VARIANT)
        self.endpoint = endpoint.rstrip("/")
        self.min_interval = max(0.0, min_interval)
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff = retry_backoff
        self._sleep = sleep
        self._clock = clock
        self._last_call: Optional[float] = None

        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0))
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        if self._owns_client:
            self.client.close()

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"


    def _throttle(self):
        if self._last_call is not None:
            wait = self.min_interval - (self._clock() - self._last_call)
            if wait > 0:
                self._sleep(wait)
        self._last_call = self._clock()


    def build_request(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> dict:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            }
                        },
                    ]
                }
            ]
        }


    @staticmethod
    def extract_text(payload) -> str:
        if not isinstance(payload, dict):
            raise MalformedClassifierOutput("Model response is not a JSON object")

        candidates = payload.get("candidates") or []
        if not candidates:
            block_reason = (payload.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise MalformedClassifierOutput(f"Model blocked the request: {block_reason}")
            raise MalformedClassifierOutput("Model response has no candidates")

        if not isinstance(candidates, list):
            raise MalformedClassifierOutput("Model response candidates is not a list")
        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise MalformedClassifierOutput("Model candidate is not a JSON object")

        content = candidate.get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            parts = []

        chunks = [p.get("text") for p in parts if isinstance(p, dict)]
        text = "".join(c for c in chunks if isinstance(c, str)).strip()
        if not text:
            finish = candidate.get("finishReason", "unknown")
            raise MalformedClassifierOutput(f"Model returned no text (finishReason={finish})")
        return text


    @staticmethod
    def error_status(response: httpx.Response) -> Optional[str]:
        """The ``error.status`` field of a Google API error body, if any."""
        if response.status_code < 400:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and isinstance(error.get("status"), str):
            return error["status"]
        return None


    def _post(self, body: dict) -> str:
        try:
            response = self.client.post(
                self.url,
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
        except httpx.TimeoutException as e:
            raise ClassifierUnavailable(f"Classifier request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ClassifierUnavailable(f"Classifier request failed: {e}") from e

        if response.status_code == 429 or self.error_status(response) == QUOTA_STATUS:
            raise ClassifierUnavailable(
                f"Classifier quota exceeded ({response.status_code}): {response.text[:200]}",
                rate_limited=True,
            )
        if response.status_code >= 500:
            raise ClassifierUnavailable(
                f"Classifier server error ({response.status_code}): {response.text[:200]}"
            )
        if response.status_code >= 400:
            raise ClassifierUnavailable(
                f"Classifier rejected the request ({response.status_code}): {response.text[:200]}",
                retryable=False,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedClassifierOutput(f"Classifier returned non-JSON body: {e}") from e
        return self.extract_text(payload)


    def classify(self, image_path) -> Verdict:
        if not self.api_key:
            raise ClassifierUnavailable("Gemini API key is not configured", retryable=False)

        p = Path(image_path)
        if not p.is_file():
            raise FileNotFoundError(f"Frame file not found: {p}")

        mime_type = mimetypes.guess_type(p.name)[0] or "image/jpeg"
        body = self.build_request(p.read_bytes(), mime_type)

        attempt = 0
        while True:
            attempt += 1
            self._throttle()
            try:
                text = self._post(body)
            except ClassifierUnavailable as e:
                if not e.retryable or attempt >= self.max_attempts:
                    raise
                logger.warning(
                    "Classifier attempt %d/%d for %s failed: %s",
                    attempt, self.max_attempts, p.name, e,
                )
                self._sleep(self.retry_backoff * attempt)
                continue

            verdict = parse_verdict(text)
            logger.debug("Frame %s -> %s (%r)", p.name, verdict.value, text[:80])
            return verdict


    def classify_frames(self, frame_paths: List[str]) -> List[FrameResult]:
        """
        Classify every frame. A frame whose classification fails is kept as an
        error frame instead of failing the whole batch.
        """
        results: List[FrameResult] = []
        for frame_path in frame_paths:
            name = Path(frame_path).name
            try:
                verdict = self.classify(frame_path)
            except (ClassifierError, OSError) as e:
                logger.error("Failed to analyze frame %s: %s", name, e)
                results.append(FrameResult(frame=name, error=str(e)))
                continue

            if verdict is Verdict.FLAGGED:
                logger.info("Flagged content detected in frame: %s", name)
            results.append(FrameResult(frame=name, verdict=verdict))
        return results
