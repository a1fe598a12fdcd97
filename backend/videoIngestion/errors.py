import re


class PipelineError(Exception):
    """Base class for failures raised inside the ingestion pipeline."""

    user_message = "Video processing failed. Please try again."


class CorruptMedia(PipelineError):
    user_message = "The video file is corrupt or incomplete. Please re-upload it."


class NoFramesExtracted(PipelineError):
    user_message = (
        "We could not read any frames from this video. "
        "Please re-upload it in a supported format."
    )


class ClassifierError(PipelineError):
    user_message = (
        "The content safety check is temporarily unavailable. "
        "Please try again later."
    )


class ClassifierUnavailable(ClassifierError):
    def __init__(self, message, rate_limited=False, retryable=True):
        super().__init__(message)
        self.rate_limited = rate_limited
        self.retryable = retryable


class MalformedClassifierOutput(ClassifierError):
    pass


class PersistenceFailure(PipelineError):
    user_message = "We could not save the processing results. Please try again."


class JobAbandoned(PipelineError):
    """
    The job record no longer accepts pipeline writes (deleted, or rejected by
    an administrator mid-run). The run stops without touching the record.
    """


TIMEOUT_MESSAGE = "Processing took too long and was stopped. Please try a shorter video."

# raw decoder / worker signatures that may surface from third-party code
FAILURE_SIGNATURES = [
    (re.compile(r"moov atom not found", re.I), CorruptMedia.user_message),
    (re.compile(r"invalid data found when processing input", re.I), CorruptMedia.user_message),
    (re.compile(r"failed to read the (duration|first frame)", re.I), CorruptMedia.user_message),
    (re.compile(r"end of file|truncated", re.I), CorruptMedia.user_message),
    (re.compile(r"resource_exhausted|quota|rate limit", re.I), ClassifierError.user_message),
    (re.compile(r"time ?limit|timed? ?out", re.I), TIMEOUT_MESSAGE),
]


def user_message_for(exc):
    """Map any exception to text that is safe to show to the uploader."""
    if isinstance(exc, PipelineError):
        return exc.user_message
    if type(exc).__name__ in ("SoftTimeLimitExceeded", "TimeLimitExceeded"):
        return TIMEOUT_MESSAGE

    raw = str(exc)
    for pattern, message in FAILURE_SIGNATURES:
        if pattern.search(raw):
            return message
    return PipelineError.user_message


def internal_detail_for(exc):
    return f"{type(exc).__name__}: {exc}"
