"""
test_upload_video_success:
Action: Upload a valid MP4 as an authenticated user.
Expect: Success (201), Video saved as pending, processing queued after commit.

test_upload_video_wrong_type / test_upload_video_too_large:
Action: Upload a PDF / a file above MAX_UPLOAD_SIZE.
Expect: Rejection (400 Error) and NO data saved to DB, nothing queued.

test_upload_video_missing_file:
Action: Send an upload request without attaching a file.
Expect: Rejection (400 Error) saying "No video file provided".

test_list_* / test_retrieve_*:
Action: Request the list of videos and a specific video ID.
Expect: Own uploads plus public safe videos, camelCase fields.

test_reject_* / test_override_*:
Action: Moderation actions as staff and as a regular user.
Expect: Staff can reject / override, everyone else gets 403.
"""

import os
import shutil
import tempfile
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from api.models import Video
from api.services import start_video_processing

MEDIA_ROOT = tempfile.mkdtemp()


def mp4_upload(name="holiday.mp4", size=2048, content_type="video/mp4"):
    return SimpleUploadedFile(name, b"\x00\x00\x00\x18ftypmp42" + b"\x00" * size, content_type=content_type)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class VideoEndpointTests(APITestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        User = get_user_model()
        self.alice = User.objects.create_user("alice", password="pw")
        self.bob = User.objects.create_user("bob", password="pw")
        self.admin = User.objects.create_user("admin", password="pw", is_staff=True)

        self.video = Video.objects.create(
            title="existing",
            file=mp4_upload("existing.mp4"),
            original_name="existing.mp4",
            mime_type="video/mp4",
            file_size=2060,
            uploaded_by=self.alice,
        )
        self.list_url = reverse("videos-list")
        self.detail_url = reverse("videos-detail", args=[self.video.id])
        self.client.force_authenticate(self.alice)

    @patch("api.services.process_video_task")
    def test_upload_video_success(self, mock_task):
        payload = {
            "file": mp4_upload(),
            "description": "beach day",
            "tags": ["summer", "family"],
            "isPublic": True,
        }

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.list_url, payload, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["detail"], "Video uploaded successfully")
        self.assertEqual(Video.objects.count(), 2)

        new_video = Video.objects.latest("created_at")
        self.assertEqual(new_video.title, "holiday")
        self.assertEqual(new_video.processing_status, "pending")
        self.assertEqual(new_video.sensitivity_status, "unknown")
        self.assertEqual(new_video.tags, ["summer", "family"])
        self.assertTrue(new_video.is_public)
        self.assertEqual(new_video.uploaded_by, self.alice)
        self.assertTrue(os.path.exists(new_video.file.path))

        video_data = response.data["video"]
        self.assertEqual(video_data["processingStatus"], "pending")
        self.assertEqual(video_data["uploadedBy"], "alice")
        self.assertEqual(video_data["originalName"], "holiday.mp4")

        mock_task.delay.assert_called_once_with(str(new_video.id))

    @patch("api.services.process_video_task")
    def test_upload_survives_broker_outage(self, mock_task):
        mock_task.delay.side_effect = ConnectionError("broker unreachable")

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.list_url, {"file": mp4_upload()}, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Video.objects.latest("created_at").processing_status, "pending")

    @patch("api.services.process_video_task")
    def test_upload_video_wrong_type(self, mock_task):
        payload = {"file": mp4_upload("report.pdf", content_type="application/pdf")}
        response = self.client.post(self.list_url, payload, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Invalid file type", str(response.data["errors"]["file"][0]))
        self.assertEqual(Video.objects.count(), 1)
        mock_task.delay.assert_not_called()

    @override_settings(MAX_UPLOAD_SIZE=1024)
    @patch("api.services.process_video_task")
    def test_upload_video_too_large(self, mock_task):
        response = self.client.post(self.list_url, {"file": mp4_upload(size=4096)}, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("File too large", str(response.data["errors"]["file"][0]))
        self.assertEqual(Video.objects.count(), 1)
        mock_task.delay.assert_not_called()

    def test_upload_video_missing_file(self):
        response = self.client.post(self.list_url, {}, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "No video file provided")

    def test_upload_requires_login(self):
        self.client.force_authenticate(None)
        response = self.client.post(self.list_url, {"file": mp4_upload()}, format="multipart")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_videos(self):
        public_safe = Video.objects.create(
            title="bob public", file=mp4_upload("b1.mp4"), original_name="b1.mp4", mime_type="video/mp4",
            uploaded_by=self.bob, is_public=True, processing_status="completed", sensitivity_status="safe",
        )
        Video.objects.create(
            title="bob flagged", file=mp4_upload("b2.mp4"), original_name="b2.mp4", mime_type="video/mp4",
            uploaded_by=self.bob, is_public=True, processing_status="completed", sensitivity_status="flagged",
        )
        Video.objects.create(
            title="bob private", file=mp4_upload("b3.mp4"), original_name="b3.mp4", mime_type="video/mp4",
            uploaded_by=self.bob,
        )

        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = {item["id"] for item in response.data["results"]}
        self.assertEqual(ids, {str(self.video.id), str(public_safe.id)})

        self.client.force_authenticate(self.admin)
        response = self.client.get(self.list_url, {"sensitivity": "flagged"})
        self.assertEqual([item["title"] for item in response.data["results"]], ["bob flagged"])

    def test_list_filters_by_status_and_search(self):
        self.video.processing_status = "failed"
        self.video.save()

        response = self.client.get(self.list_url, {"status": "failed", "search": "exist"})
        self.assertEqual(len(response.data["results"]), 1)
        response = self.client.get(self.list_url, {"status": "completed"})
        self.assertEqual(len(response.data["results"]), 0)

    def test_retrieve_video(self):
        response = self.client.get(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["id"], str(self.video.id))
        self.assertEqual(response.data["sensitivityStatus"], "unknown")
        self.assertNotIn("processingErrorDetail", response.data)

    def test_retrieve_private_video_of_someone_else(self):
        self.client.force_authenticate(self.bob)
        response = self.client.get(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_edit_video_details(self):
        payload = {"title": "renamed", "tags": ["a", "b"], "isPublic": True, "category": "travel"}
        response = self.client.patch(self.detail_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["video"]["title"], "renamed")
        self.video.refresh_from_db()
        self.assertEqual(self.video.title, "renamed")
        self.assertEqual(self.video.tags, ["a", "b"])
        self.assertTrue(self.video.is_public)
        self.assertEqual(self.video.category, "travel")
        self.assertEqual(self.video.processing_status, "pending")

    def test_edit_does_not_touch_processing_fields(self):
        response = self.client.put(
            self.detail_url,
            {"description": "new text", "processingStatus": "completed", "sensitivityStatus": "safe"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.video.refresh_from_db()
        self.assertEqual(self.video.description, "new text")
        self.assertEqual(self.video.processing_status, "pending")
        self.assertEqual(self.video.sensitivity_status, "unknown")

    def test_edit_by_non_owner_is_forbidden(self):
        self.video.is_public = True
        self.video.save()
        self.client.force_authenticate(self.bob)

        response = self.client.patch(self.detail_url, {"title": "mine now"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.video.refresh_from_db()
        self.assertEqual(self.video.title, "existing")

    def test_delete_video_removes_file(self):
        path = self.video.file.path
        self.assertTrue(os.path.exists(path))

        response = self.client.delete(self.detail_url)

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Video.objects.filter(pk=self.video.pk).exists())
        self.assertFalse(os.path.exists(path))

    def test_delete_by_non_owner_is_forbidden(self):
        self.video.is_public = True
        self.video.save()
        self.client.force_authenticate(self.bob)

        response = self.client.delete(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Video.objects.filter(pk=self.video.pk).exists())

    def test_reject_as_staff(self):
        self.client.force_authenticate(self.admin)
        url = reverse("videos-reject", args=[self.video.id])

        response = self.client.post(url, {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.video.refresh_from_db()
        self.assertEqual(self.video.processing_status, "rejected")
        self.assertEqual(self.video.rejection_reason, "Content policy violation")
        self.assertEqual(response.data["video"]["rejectionReason"], "Content policy violation")

    def test_reject_as_regular_user(self):
        url = reverse("videos-reject", args=[self.video.id])
        response = self.client.post(url, {"reason": "mine anyway"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_override_safety(self):
        self.client.force_authenticate(self.admin)
        url = reverse("videos-override-safety", args=[self.video.id])

        response = self.client.post(url, {"sensitivityStatus": "flagged"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.video.refresh_from_db()
        self.assertEqual(self.video.sensitivity_status, "flagged")
        self.assertEqual(self.video.sensitivity_score, 100)

        response = self.client.post(url, {"sensitivityStatus": "unknown"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_override_safety_as_regular_user(self):
        url = reverse("videos-override-safety", args=[self.video.id])
        response = self.client.post(url, {"sensitivityStatus": "safe"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_health(self):
        self.client.force_authenticate(None)
        response = self.client.get(reverse("health"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "OK")


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class StartProcessingTests(APITestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user("carol", password="pw")
        self.video = Video.objects.create(
            title="c", file=mp4_upload("c.mp4"), original_name="c.mp4",
            mime_type="video/mp4", uploaded_by=self.user,
        )

    @patch("api.services.process_video_task")
    def test_only_pending_videos_are_queued(self, mock_task):
        with self.captureOnCommitCallbacks(execute=True):
            self.assertTrue(start_video_processing(self.video))
            self.assertFalse(start_video_processing(self.video))
            self.assertFalse(start_video_processing(Video.objects.get(pk=self.video.pk)))

        mock_task.delay.assert_called_once_with(str(self.video.id))
        self.video.refresh_from_db()
        self.assertIsNotNone(self.video.queued_at)

    @patch("api.services.process_video_task")
    def test_non_pending_videos_are_not_queued(self, mock_task):
        Video.objects.filter(pk=self.video.pk).update(processing_status="rejected")

        with self.captureOnCommitCallbacks(execute=True):
            self.assertFalse(start_video_processing(self.video))

        mock_task.delay.assert_not_called()

    @patch("api.services.process_video_task")
    def test_broker_outage_releases_the_claim(self, mock_task):
        mock_task.delay.side_effect = ConnectionError("broker unreachable")

        with self.captureOnCommitCallbacks(execute=True):
            self.assertTrue(start_video_processing(self.video))
        self.video.refresh_from_db()
        self.assertIsNone(self.video.queued_at)
        self.assertEqual(self.video.processing_status, "pending")

        mock_task.delay.side_effect = None
        with self.captureOnCommitCallbacks(execute=True):
            self.assertTrue(start_video_processing(self.video))
        self.assertEqual(mock_task.delay.call_count, 2)
