import logging
import os

from django.db import transaction
from django.db.models import Q
from django.http import JsonResponse
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from .models import Video
from .serializers import (
    RejectSerializer,
    SafetyOverrideSerializer,
    VideoSerializer,
    VideoUpdateSerializer,
    VideoUploadSerializer,
)
from .services import start_video_processing

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Content policy violation"


def health(request):
    return JsonResponse({"status": "OK", "timestamp": timezone.now().isoformat()})


class VideoViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = VideoSerializer

    def get_queryset(self):
        qs = Video.objects.select_related("uploaded_by").order_by("-created_at")
        user = self.request.user

        if not user.is_staff:
            # own uploads, plus public videos that passed moderation
            qs = qs.filter(
                Q(uploaded_by=user)
                | (
                    Q(is_public=True)
                    & ~Q(processing_status=Video.ProcessingStatus.REJECTED)
                    & ~Q(sensitivity_status=Video.SensitivityStatus.FLAGGED)
                )
            )

        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(processing_status=params["status"])
        if params.get("sensitivity"):
            qs = qs.filter(sensitivity_status=params["sensitivity"])
        if params.get("category"):
            qs = qs.filter(category=params["category"])
        if params.get("search"):
            term = params["search"]
            qs = qs.filter(Q(title__icontains=term) | Q(description__icontains=term))
        return qs

    def create(self, request, *args, **kwargs):
        if not request.FILES.get("file"):
            return Response({"detail": "No video file provided"}, status=status.HTTP_400_BAD_REQUEST)

        upload = VideoUploadSerializer(data=request.data)
        if not upload.is_valid():
            return Response(
                {"detail": "Invalid upload", "errors": upload.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = upload.validated_data
        f = data["file"]
        with transaction.atomic():
            video = Video.objects.create(
                title=data.get("title") or os.path.splitext(f.name)[0],
                description=data.get("description", ""),
                category=data.get("category") or "general",
                tags=data.get("tags", []),
                is_public=data.get("isPublic", False),
                file=f,
                original_name=f.name,
                mime_type=f.content_type,
                file_size=f.size,
                uploaded_by=request.user,
            )
            # runs after commit, the response does not wait for processing
            start_video_processing(video)

        logger.info("Video %s uploaded by %s (%d bytes)", video.pk, request.user.pk, video.file_size)
        return Response(
            {"detail": "Video uploaded successfully", "video": VideoSerializer(video).data},
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        video = self.get_object()
        if video.uploaded_by_id != request.user.pk:
            return Response(
                {"detail": "Only the uploader can edit this video"},
                status=status.HTTP_403_FORBIDDEN,
            )

        serializer = VideoUpdateSerializer(video, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()

        logger.info("Video %s details updated by %s", video.pk, request.user.pk)
        return Response({"detail": "Video updated successfully", "video": VideoSerializer(video).data})

    def partial_update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        video = self.get_object()
        if video.uploaded_by_id != request.user.pk:
            return Response(
                {"detail": "Only the uploader can delete this video"},
                status=status.HTTP_403_FORBIDDEN,
            )

        path = video.file.path if video.file else None
        video.delete()
        if path:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.exception("Could not remove stored file %s", path)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], permission_classes=[IsAdminUser])
    def reject(self, request, pk=None):
        video = self.get_object()
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        video.processing_status = Video.ProcessingStatus.REJECTED
        video.rejection_reason = serializer.validated_data["reason"] or DEFAULT_REJECTION_REASON
        video.save(update_fields=["processing_status", "rejection_reason", "updated_at"])

        logger.info("Video %s rejected by %s", video.pk, request.user.pk)
        return Response({"detail": "Video rejected successfully", "video": VideoSerializer(video).data})

    @action(
        detail=True,
        methods=["post"],
        url_path="override-safety",
        permission_classes=[IsAdminUser],
    )
    def override_safety(self, request, pk=None):
        video = self.get_object()
        serializer = SafetyOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        new_status = serializer.validated_data["sensitivityStatus"]
        video.sensitivity_status = new_status
        video.sensitivity_score = 100 if new_status == Video.SensitivityStatus.FLAGGED else 0
        video.save(update_fields=["sensitivity_status", "sensitivity_score", "updated_at"])

        logger.info("Video %s safety overridden to %s by %s", video.pk, new_status, request.user.pk)
        return Response({"detail": "Safety status updated", "video": VideoSerializer(video).data})
