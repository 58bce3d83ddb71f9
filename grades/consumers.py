import asyncio
import contextlib

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from grades.services.metrics import get_metrics

METRIC_FIELDS = (
    "promotions_succeeded",
    "promotions_rejected",
    "promotions_failed",
    "bulk_year_students_updated",
    "bulk_year_students_failed",
    "archived_rows",
    "elapsed_seconds",
)


class GradeMetricsConsumer(AsyncJsonWebsocketConsumer):
    """
    Pushes promotion / academic-year counters to connected clients every few seconds.
    """

    interval = 3

    async def connect(self):
        await self.accept()
        self._running = True
        await self.send_metrics()
        self._task = asyncio.create_task(self._loop())

    async def disconnect(self, close_code):
        self._running = False
        if hasattr(self, "_task"):
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def _loop(self):
        while self._running:
            await asyncio.sleep(self.interval)
            await self.send_metrics()

    async def send_metrics(self):
        metrics = await sync_to_async(get_metrics)()
        if metrics is None:
            await self.send_json({"type": "metrics", **{name: None for name in METRIC_FIELDS}, "available": False})
            return
        await self.send_json({"type": "metrics", **{name: metrics[name] for name in METRIC_FIELDS}, "available": True})
