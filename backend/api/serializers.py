from django.conf import settings
from rest_framework import serializers
from .models import Video


class VideoSerializer(serializers.ModelSerializer):
    originalName = serializers.CharField(source="original_name", read_only=True)
    mimeType = serializers.CharField(source="mime_type", read_only=True)
    fileSize = serializers.IntegerField(source="file_size", read_only=True)
    isPublic = serializers.BooleanField(source="is_public", read_only=True)
    uploadedBy = serializers.CharField(source="uploaded_by.username", read_only=True)
    processingStatus = serializers.CharField(source="processing_status", read_only=True)
    processingProgress = serializers.IntegerField(source="processing_progress", read_only=True)
    processingError = serializers.CharField(source="processing_error", read_only=True)
    rejectionReason = serializers.CharField(source="rejection_reason", read_only=True)
    sensitivityStatus = serializers.CharField(source="sensitivity_status", read_only=True)
    sensitivityScore = serializers.IntegerField(source="sensitivity_score", read_only=True)
    totalFrames = serializers.IntegerField(source="total_frames", read_only=True)
    flaggedFrames = serializers.IntegerField(source="flagged_frames", read_only=True)
    errorFrames = serializers.IntegerField(source="error_frames", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)
    processedAt = serializers.DateTimeField(source="processed_at", read_only=True)

    class Meta:
        model = Video
        fields = [
            "id", "title", "description", "category", "tags",
            "originalName", "mimeType", "fileSize", "isPublic", "uploadedBy",
            "processingStatus", "processingProgress", "processingError", "rejectionReason",
            "duration", "metadata",
            "sensitivityStatus", "sensitivityScore", "totalFrames", "flaggedFrames", "errorFrames",
            "createdAt", "updatedAt", "processedAt",
        ]
        read_only_fields = ["duration", "metadata"]


class VideoUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    title = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    category = serializers.CharField(max_length=64, required=False, default="general")
    tags = serializers.ListField(child=serializers.CharField(max_length=64), required=False, default=list)
    isPublic = serializers.BooleanField(required=False, default=False)

    def validate_file(self, f):
        allowed = settings.ALLOWED_VIDEO_TYPES
        if f.content_type not in allowed:
            raise serializers.ValidationError(
                f"Invalid file type: {f.content_type}. Only video files are allowed."
            )
        if f.size > settings.MAX_UPLOAD_SIZE:
            raise serializers.ValidationError(
                f"File too large: {f.size} bytes (limit {settings.MAX_UPLOAD_SIZE})."
            )
        return f


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class SafetyOverrideSerializer(serializers.Serializer):
    sensitivityStatus = serializers.ChoiceField(
        choices=[Video.SensitivityStatus.SAFE, Video.SensitivityStatus.FLAGGED]
    )


class VideoUpdateSerializer(serializers.ModelSerializer):
    isPublic = serializers.BooleanField(source="is_public", required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=64), required=False)

    class Meta:
        model = Video
        fields = ["title", "description", "category", "tags", "isPublic"]
        extra_kwargs = {
            "title": {"required": False},
            "description": {"required": False},
            "category": {"required": False},
        }

    def update(self, instance, validated_data):
        # only the edited columns, the pipeline may be writing the rest
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save(update_fields=[*validated_data, "updated_at"])
        return instance
