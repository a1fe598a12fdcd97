import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Video",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("category", models.CharField(default="general", max_length=64)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("is_public", models.BooleanField(default=False)),
                ("file", models.FileField(upload_to="uploads/")),
                ("original_name", models.CharField(max_length=255)),
                ("mime_type", models.CharField(max_length=100)),
                ("file_size", models.PositiveBigIntegerField(default=0)),
                (
                    "processing_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("rejected", "Rejected"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("processing_progress", models.PositiveSmallIntegerField(default=0)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("duration", models.FloatField(default=0)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "sensitivity_status",
                    models.CharField(
                        choices=[("unknown", "Unknown"), ("safe", "Safe"), ("flagged", "Flagged")],
                        default="unknown",
                        max_length=16,
                    ),
                ),
                ("sensitivity_score", models.PositiveSmallIntegerField(default=0)),
                ("total_frames", models.PositiveSmallIntegerField(default=0)),
                ("flagged_frames", models.PositiveSmallIntegerField(default=0)),
                ("safe_frames", models.PositiveSmallIntegerField(default=0)),
                ("error_frames", models.PositiveSmallIntegerField(default=0)),
                ("frame_results", models.JSONField(blank=True, default=list)),
                ("processing_error", models.TextField(blank=True, default="")),
                ("processing_error_detail", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "uploaded_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="videos",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["uploaded_by"], name="video_owner_idx"),
                    models.Index(fields=["processing_status"], name="video_status_idx"),
                    models.Index(fields=["sensitivity_status"], name="video_sensitivity_idx"),
                ],
            },
        ),
    ]
