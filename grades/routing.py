from django.urls import path

from .consumers import GradeMetricsConsumer

websocket_urlpatterns = [
    path("ws/grades/metrics/", GradeMetricsConsumer.as_asgi()),
]
