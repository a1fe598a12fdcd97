import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

PROGRESS_EVENT = "videoProgress"
PROCESSED_EVENT = "videoProcessed"
TERMINAL_STATUSES = ("completed", "failed")


def user_group_name(user_id):
    return f"user_{user_id}"


class ChannelsProgressNotifier:
    """
    Pushes pipeline events to every open socket of the video's owner.

    Delivery is best effort: with no channel layer or nobody listening the
    event is simply dropped. Clients re-read the video record on reconnect.
    """

    def __init__(self, channel_layer=None):
        self.channel_layer = channel_layer or get_channel_layer()

    def publish(self, user_id, video_id, event):
        if self.channel_layer is None:
            logger.debug("No channel layer configured, dropping event for video %s", video_id)
            return

        terminal = event.get("status") in TERMINAL_STATUSES
        message = {
            # maps to VideoProgressConsumer.video_progress / .video_processed
            "type": "video.processed" if terminal else "video.progress",
            "event": PROCESSED_EVENT if terminal else PROGRESS_EVENT,
            "data": {"videoId": str(video_id), **event},
        }
        async_to_sync(self.channel_layer.group_send)(user_group_name(user_id), message)
