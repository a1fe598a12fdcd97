"""
test_connect_*:
Action: Open /ws/videos/ as an anonymous or a logged-in user.
Expect: Anonymous sockets are refused, logged-in sockets join user_<id>.

test_events_*:
Action: Publish pipeline events through ChannelsProgressNotifier.
Expect: The owner receives {"event", "data": {"videoId", ...}}, other users
receive nothing.
"""

from types import SimpleNamespace

from asgiref.sync import sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TransactionTestCase, override_settings

from api.consumers import VideoProgressConsumer
from api.notifier import ChannelsProgressNotifier, user_group_name

IN_MEMORY_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}


def make_user(pk):
    return SimpleNamespace(pk=pk, is_authenticated=True)


def communicator_for(user):
    communicator = WebsocketCommunicator(VideoProgressConsumer.as_asgi(), "/ws/videos/")
    communicator.scope["user"] = user
    return communicator


@override_settings(CHANNEL_LAYERS=IN_MEMORY_LAYERS)
class VideoProgressConsumerTests(TransactionTestCase):

    async def test_connect_anonymous_is_refused(self):
        communicator = communicator_for(AnonymousUser())
        connected, _ = await communicator.connect()
        self.assertFalse(connected)

    async def test_connect_authenticated(self):
        communicator = communicator_for(make_user(7))
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        self.assertTrue(await communicator.receive_nothing(timeout=0.1))
        await communicator.disconnect()

    async def test_events_reach_only_the_owner(self):
        owner = communicator_for(make_user(7))
        other = communicator_for(make_user(8))
        await owner.connect()
        await other.connect()

        notifier = ChannelsProgressNotifier(get_channel_layer())
        await sync_to_async(notifier.publish)(
            "7", "vid-1", {"status": "processing", "progress": 45, "message": "Extracting frames for analysis..."}
        )
        await sync_to_async(notifier.publish)(
            "7", "vid-1", {"status": "completed", "progress": 100, "analysis": {"status": "safe"}}
        )

        progress = await owner.receive_json_from(timeout=1)
        self.assertEqual(progress["event"], "videoProgress")
        self.assertEqual(progress["data"]["videoId"], "vid-1")
        self.assertEqual(progress["data"]["progress"], 45)

        processed = await owner.receive_json_from(timeout=1)
        self.assertEqual(processed["event"], "videoProcessed")
        self.assertEqual(processed["data"]["status"], "completed")
        self.assertEqual(processed["data"]["analysis"]["status"], "safe")

        self.assertTrue(await other.receive_nothing(timeout=0.2))

        await owner.disconnect()
        await other.disconnect()

    async def test_events_fan_out_to_every_socket_of_the_owner(self):
        first = communicator_for(make_user(7))
        second = communicator_for(make_user(7))
        await first.connect()
        await second.connect()

        notifier = ChannelsProgressNotifier(get_channel_layer())
        await sync_to_async(notifier.publish)("7", "vid-2", {"status": "failed", "error": "oops"})

        for communicator in (first, second):
            message = await communicator.receive_json_from(timeout=1)
            self.assertEqual(message["event"], "videoProcessed")
            self.assertEqual(message["data"]["error"], "oops")
            await communicator.disconnect()


class NotifierTests(SimpleTestCase):

    def test_group_name(self):
        self.assertEqual(user_group_name(42), "user_42")

    def test_publish_without_channel_layer_is_dropped(self):
        notifier = ChannelsProgressNotifier()
        notifier.channel_layer = None
        notifier.publish("1", "vid", {"status": "processing", "progress": 5})
