import logging
import time

from django.conf import settings
from django.db import DatabaseError, close_old_connections
from django.utils import timezone

from videoIngestion import JobRecord, PersistenceFailure
from .models import Video

logger = logging.getLogger(__name__)


class DjangoVideoStore:
    """Job-record access for the pipeline, one row per video."""

    def __init__(self, max_attempts=None, retry_delay=0.5, sleep=time.sleep):
        self.max_attempts = max(1, max_attempts or settings.VIDEO_STORE_MAX_ATTEMPTS)
        self.retry_delay = retry_delay
        self._sleep = sleep

    def find(self, video_id):
        video = (
            Video.objects.filter(pk=video_id)
            .only("id", "uploaded_by", "file", "processing_status")
            .first()
        )
        if video is None:
            return None
        return JobRecord(
            id=str(video.pk),
            owner_id=str(video.uploaded_by_id) if video.uploaded_by_id else None,
            source_path=video.file.path if video.file else "",
            status=video.processing_status,
        )

    def update(self, video_id, **fields):
        # QuerySet.update() skips auto_now
        fields.setdefault("updated_at", timezone.now())

        for attempt in range(1, self.max_attempts + 1):
            try:
                # an administrator's rejection is final
                updated = (
                    Video.objects.filter(pk=video_id)
                    .exclude(processing_status=Video.ProcessingStatus.REJECTED)
                    .update(**fields)
                )
            except DatabaseError as e:
                if attempt >= self.max_attempts:
                    raise PersistenceFailure(
                        f"Could not update video {video_id} after {attempt} attempts: {e}"
                    ) from e
                logger.warning(
                    "Update of video %s failed (attempt %d/%d): %s",
                    video_id, attempt, self.max_attempts, e,
                )
                close_old_connections()
                self._sleep(self.retry_delay * attempt)
                continue

            if updated == 0:
                logger.warning("Video %s is gone or rejected, skipped update of %s", video_id, sorted(fields))
            return updated > 0
