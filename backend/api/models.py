import uuid

from django.conf import settings
from django.db import models


class Video(models.Model):
    class ProcessingStatus(models.TextChoices):
        PENDING = "pending"
        PROCESSING = "processing"
        COMPLETED = "completed"
        FAILED = "failed"
        REJECTED = "rejected"

    class SensitivityStatus(models.TextChoices):
        UNKNOWN = "unknown"
        SAFE = "safe"
        FLAGGED = "flagged"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=64, default="general")
    tags = models.JSONField(default=list, blank=True)
    is_public = models.BooleanField(default=False)

    file = models.FileField(upload_to="uploads/")
    original_name = models.CharField(max_length=255)
    mime_type = models.CharField(max_length=100)
    file_size = models.PositiveBigIntegerField(default=0)  # bytes

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="videos",
    )

    processing_status = models.CharField(
        max_length=16,
        choices=ProcessingStatus.choices,
        default=ProcessingStatus.PENDING,
    )
    processing_progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    rejection_reason = models.TextField(blank=True, default="")

    duration = models.FloatField(default=0)  # seconds
    metadata = models.JSONField(default=dict, blank=True)  # width/height/codec/fps/bitrate/format/quality

    sensitivity_status = models.CharField(
        max_length=16,
        choices=SensitivityStatus.choices,
        default=SensitivityStatus.UNKNOWN,
    )
    sensitivity_score = models.PositiveSmallIntegerField(default=0)
    total_frames = models.PositiveSmallIntegerField(default=0)
    flagged_frames = models.PositiveSmallIntegerField(default=0)
    safe_frames = models.PositiveSmallIntegerField(default=0)
    error_frames = models.PositiveSmallIntegerField(default=0)
    frame_results = models.JSONField(default=list, blank=True)

    processing_error = models.TextField(blank=True, default="")
    processing_error_detail = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    queued_at = models.DateTimeField(null=True, blank=True)  # set once, when processing is scheduled

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["uploaded_by"], name="video_owner_idx"),
            models.Index(fields=["processing_status"], name="video_status_idx"),
            models.Index(fields=["sensitivity_status"], name="video_sensitivity_idx"),
        ]

    def __str__(self):
        return f"Video {self.id} ({self.processing_status})"

    @property
    def is_terminal(self):
        return self.processing_status in (
            self.ProcessingStatus.COMPLETED,
            self.ProcessingStatus.FAILED,
            self.ProcessingStatus.REJECTED,
        )
