import logging

from django.db import transaction
from django.utils import timezone

from .models import Video
from .tasks import process_video_task

logger = logging.getLogger(__name__)


def start_video_processing(video):
    """
    Schedule the ingestion pipeline for a freshly uploaded video.

    The video row is claimed with a conditional update (pending and never
    queued), so only the first call for an upload schedules a run, even when
    callers hold stale copies of the row. The task is queued once the
    surrounding transaction commits and never blocks the caller.
    """
    now = timezone.now()
    claimed = Video.objects.filter(
        pk=video.pk,
        processing_status=Video.ProcessingStatus.PENDING,
        queued_at__isnull=True,
    ).update(queued_at=now)
    if not claimed:
        logger.info("Video %s is already scheduled or past pending, not scheduling processing", video.pk)
        return False

    video.queued_at = now
    video_id = str(video.pk)
    transaction.on_commit(lambda: _enqueue(video_id))
    return True


def _enqueue(video_id):
    try:
        result = process_video_task.delay(video_id)
    except Exception:
        # broker down: the upload is kept pending and can be scheduled again
        logger.exception("Could not enqueue processing for video %s", video_id)
        Video.objects.filter(pk=video_id).update(queued_at=None)
        return None
    logger.info("Queued processing for video %s (task %s)", video_id, result.id)
    return result
