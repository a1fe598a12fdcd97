import logging
from celery import shared_task
from django.conf import settings

from videoIngestion import FrameSampler, GeminiSafetyClassifier, VerdictAggregator, VideoPipeline
from videoIngestion.safety import get_prompt
from .notifier import ChannelsProgressNotifier
from .store import DjangoVideoStore

logger = logging.getLogger(__name__)

TIME_LIMIT = settings.VIDEO_PIPELINE_TIME_LIMIT


def build_classifier(http_client=None):
    return GeminiSafetyClassifier(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        prompt=get_prompt(settings.SAFETY_PROMPT_VARIANT),
        endpoint=settings.GEMINI_ENDPOINT,
        timeout=settings.SAFETY_REQUEST_TIMEOUT,
        min_interval=settings.SAFETY_MIN_INTERVAL_SECONDS,
        max_attempts=settings.SAFETY_MAX_ATTEMPTS,
        http_client=http_client,
    )


def build_pipeline(classifier, notifier=None, store=None, sampler=None):
    """Wire the pipeline from Django settings; any collaborator can be swapped in."""
    return VideoPipeline(
        store=store or DjangoVideoStore(),
        sampler=sampler or FrameSampler(
            ffprobe_binary=settings.FFPROBE_BINARY,
            min_file_size=settings.VIDEO_MIN_FILE_SIZE,
            frame_width=settings.VIDEO_FRAME_WIDTH,
        ),
        classifier=classifier,
        aggregator=VerdictAggregator(
            policy=settings.SAFETY_POLICY,
            threshold=settings.SAFETY_THRESHOLD,
        ),
        notifier=notifier or ChannelsProgressNotifier(),
        temp_root=settings.VIDEO_PIPELINE_TEMP_ROOT,
        frame_count=settings.VIDEO_FRAME_COUNT,
    )


@shared_task(
    name="process_video",
    soft_time_limit=TIME_LIMIT or None,
    time_limit=(TIME_LIMIT + 30) if TIME_LIMIT else None,
)
def process_video_task(video_id: str):
    logger.info("Starting processing for video %s", video_id)

    with build_classifier() as classifier:
        summary = build_pipeline(classifier).run(video_id)

    if summary is None:
        return {"video_id": str(video_id), "status": "not_completed"}
    return {
        "video_id": str(video_id),
        "status": "completed",
        "sensitivity": summary.status.value,
        "score": summary.score,
    }
