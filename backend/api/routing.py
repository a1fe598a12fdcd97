from django.urls import path

from .consumers import VideoProgressConsumer

websocket_urlpatterns = [
    path("ws/videos/", VideoProgressConsumer.as_asgi()),
]
