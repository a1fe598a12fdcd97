from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List

from .classifier import FrameResult, Verdict


class AggregationPolicy(str, Enum):
    ZERO_TOLERANCE = "zero_tolerance"
    THRESHOLD = "threshold"


class Disposition(str, Enum):
    UNKNOWN = "unknown"
    SAFE = "safe"
    FLAGGED = "flagged"


@dataclass
class SafetySummary:
    status: Disposition
    score: int
    flagged_count: int
    safe_count: int
    error_count: int
    policy: AggregationPolicy
    frame_results: List[FrameResult] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return self.flagged_count + self.safe_count + self.error_count

    @property
    def scored_count(self) -> int:
        return self.flagged_count + self.safe_count

    def as_dict(self) -> dict:
        return {
            "status": self.status.value,
            "score": self.score,
            "policy": self.policy.value,
            "totalFrames": self.total_count,
            "flaggedFrames": self.flagged_count,
            "safeFrames": self.safe_count,
            "errorFrames": self.error_count,
            "frameResults": [r.as_dict() for r in self.frame_results],
        }


def percent(part: int, whole: int) -> int:
    return int((Decimal(100 * part) / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class VerdictAggregator:
    """
    Folds per-frame verdicts into one video-level disposition.

    zero_tolerance: a single FLAGGED frame flags the video, score is 100 or 0.
    threshold: the video is flagged when flagged/scored > threshold, score is
    the flagged percentage. Error frames are counted in the totals but never
    in the scoring denominator.
    """

    def __init__(self, policy=AggregationPolicy.ZERO_TOLERANCE, threshold: float = 0.5):
        self.policy = AggregationPolicy(policy)
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold

    def aggregate(self, frame_results: List[FrameResult]) -> SafetySummary:
        flagged = sum(1 for r in frame_results if r.verdict is Verdict.FLAGGED)
        safe = sum(1 for r in frame_results if r.verdict is Verdict.SAFE)
        errors = sum(1 for r in frame_results if r.is_error)

        scored = flagged + safe
        if scored == 0:
            raise ValueError("Cannot aggregate a video with no classified frames")

        if self.policy is AggregationPolicy.ZERO_TOLERANCE:
            is_flagged = flagged > 0
            score = 100 if is_flagged else 0
        else:
            # exact rational comparison so the boundary never flips
            is_flagged = Decimal(flagged) / Decimal(scored) > Decimal(str(self.threshold))
            score = percent(flagged, scored)

        return SafetySummary(
            status=Disposition.FLAGGED if is_flagged else Disposition.SAFE,
            score=score,
            flagged_count=flagged,
            safe_count=safe,
            error_count=errors,
            policy=self.policy,
            frame_results=list(frame_results),
        )
