import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from .errors import ClassifierUnavailable, JobAbandoned, internal_detail_for, user_message_for
from .safety import Disposition, FrameResult, SafetySummary
from .utils import remove_work_dir

logger = logging.getLogger(__name__)

# Lifecycle values shared with the persisted record
PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
REJECTED = "rejected"


@dataclass(frozen=True)
class Checkpoint:
    progress: int
    message: str


INIT = Checkpoint(5, "Initializing processing...")
METADATA = Checkpoint(20, "Extracting video metadata...")
SAMPLING = Checkpoint(45, "Extracting frames for analysis...")
CLASSIFYING = Checkpoint(75, "Analyzing content safety with AI...")
FINALIZING = Checkpoint(95, "Finalizing results...")

CHECKPOINTS = (INIT, METADATA, SAMPLING, CLASSIFYING, FINALIZING)


@dataclass
class JobRecord:
    id: str
    owner_id: Optional[str]
    source_path: str
    status: str = PENDING


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoPipeline:
    """
    Runs one uploaded video through metadata probing, frame sampling, safety
    classification and aggregation, persisting each checkpoint and pushing it
    to the owner.

    Collaborators are injected:
        store       find(video_id) -> JobRecord | None, update(video_id, **fields) -> bool
                    (False once the record is deleted or rejected)
        sampler     check_source / probe / sample (see FrameSampler)
        classifier  classify_frames(paths) -> list[FrameResult]
        aggregator  aggregate(list[FrameResult]) -> SafetySummary
        notifier    publish(user_id, video_id, event)

    Only one run per video id is expected at a time; nothing here locks.
    """

    def __init__(
        self,
        store,
        sampler,
        classifier,
        aggregator,
        notifier,
        temp_root,
        frame_count: int = 3,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.sampler = sampler
        self.classifier = classifier
        self.aggregator = aggregator
        self.notifier = notifier
        self.temp_root = Path(temp_root)
        self.frame_count = frame_count
        self.now = now

    def work_dir_for(self, video_id) -> Path:
        return self.temp_root / f"frames-{video_id}"


    def run(self, video_id) -> Optional[SafetySummary]:
        job = self.store.find(video_id)
        if job is None:
            logger.info("Video %s no longer exists, skipping processing", video_id)
            return None
        if job.status == REJECTED:
            logger.info("Video %s was rejected by an administrator, skipping processing", video_id)
            return None

        work_dir = self.work_dir_for(job.id)
        try:
            summary = self._process(job, work_dir)
        except JobAbandoned as e:
            logger.info("Stopped processing video %s: %s", job.id, e)
            return None
        except Exception as e:
            logger.exception("Processing failed for video %s", job.id)
            self._fail(job, e)
            return None
        finally:
            remove_work_dir(work_dir)

        logger.info(
            "Video %s processed: %s (score=%d, flagged=%d/%d, errors=%d)",
            job.id, summary.status.value, summary.score,
            summary.flagged_count, summary.total_count, summary.error_count,
        )
        return summary


    def _process(self, job: JobRecord, work_dir: Path) -> SafetySummary:
        self._checkpoint(job, INIT)
        self.sampler.check_source(job.source_path)

        self._checkpoint(job, METADATA)
        metadata = self.sampler.probe(job.source_path)
        self._write(job, duration=metadata.duration, metadata=metadata.as_record())

        self._checkpoint(job, SAMPLING)
        frames = self.sampler.sample(
            job.source_path, work_dir, self.frame_count, duration=metadata.duration
        )

        self._checkpoint(job, CLASSIFYING)
        frame_results = self._classify(frames)
        summary = self.aggregator.aggregate(frame_results)

        self._checkpoint(job, FINALIZING)
        self._write(
            job,
            processing_status=COMPLETED,
            processing_progress=100,
            sensitivity_status=summary.status.value,
            sensitivity_score=summary.score,
            flagged_frames=summary.flagged_count,
            safe_frames=summary.safe_count,
            error_frames=summary.error_count,
            total_frames=summary.total_count,
            frame_results=[r.as_dict() for r in summary.frame_results],
            processing_error="",
            processing_error_detail="",
            processed_at=self.now(),
        )
        self._notify(job, {
            "status": COMPLETED,
            "progress": 100,
            "analysis": summary.as_dict(),
        })
        return summary


    def _classify(self, frames: List[str]) -> List[FrameResult]:
        results = self.classifier.classify_frames(frames)
        if results and all(r.is_error for r in results):
            raise ClassifierUnavailable(
                f"All {len(results)} frames failed classification; last error: {results[-1].error}"
            )
        return results


    def _write(self, job: JobRecord, **fields):
        # the store refuses writes to deleted or rejected records
        if not self.store.update(job.id, **fields):
            raise JobAbandoned(f"video {job.id} was deleted or rejected during processing")


    def _checkpoint(self, job: JobRecord, checkpoint: Checkpoint):
        self._write(
            job,
            processing_status=PROCESSING,
            processing_progress=checkpoint.progress,
        )
        self._notify(job, {
            "status": PROCESSING,
            "progress": checkpoint.progress,
            "message": checkpoint.message,
        })


    def _notify(self, job: JobRecord, event: dict):
        if job.owner_id is None:
            return
        try:
            self.notifier.publish(job.owner_id, job.id, event)
        except Exception:
            logger.warning("Progress notification failed for video %s", job.id, exc_info=True)


    def _fail(self, job: JobRecord, error: Exception):
        user_message = user_message_for(error)
        try:
            recorded = self.store.update(
                job.id,
                processing_status=FAILED,
                processing_progress=0,
                sensitivity_status=Disposition.UNKNOWN.value,
                processing_error=user_message,
                processing_error_detail=internal_detail_for(error),
            )
        except Exception:
            logger.exception("Failed to mark video %s as failed", job.id)
            recorded = True

        if not recorded:
            logger.info("Video %s was deleted or rejected, failure not recorded", job.id)
            return
        self._notify(job, {"status": FAILED, "error": user_message})
