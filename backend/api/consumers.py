import json
from channels.generic.websocket import AsyncWebsocketConsumer

from .notifier import user_group_name


class VideoProgressConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close()
            return

        self.room_group_name = user_group_name(user.pk)

        # Join the room shared by all of this user's sockets
        await self.channel_layer.group_add(
            self.room_group_name,
            self.channel_name
        )
        await self.accept()

    async def disconnect(self, close_code):
        # Leave the room
        if hasattr(self, "room_group_name"):
            await self.channel_layer.group_discard(
                self.room_group_name,
                self.channel_name
            )

    # Handles the 'video.progress' messages sent by ChannelsProgressNotifier
    async def video_progress(self, event):
        await self._forward(event)

    # Handles the terminal 'video.processed' messages
    async def video_processed(self, event):
        await self._forward(event)

    async def _forward(self, event):
        await self.send(text_data=json.dumps({
            "event": event["event"],
            "data": event["data"],
        }))
