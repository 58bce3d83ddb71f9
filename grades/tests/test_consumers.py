from unittest.mock import patch

from channels.testing import WebsocketCommunicator
from django.test import SimpleTestCase

from grades.consumers import GradeMetricsConsumer

SAMPLE = {
    "promotions_succeeded": 3,
    "promotions_rejected": 1,
    "promotions_failed": 0,
    "bulk_year_students_updated": 12,
    "bulk_year_students_failed": 2,
    "archived_rows": 40,
    "elapsed_seconds": 8.5,
}


class GradeMetricsConsumerTests(SimpleTestCase):
    databases = {"default"}

    async def _first_message(self):
        communicator = WebsocketCommunicator(GradeMetricsConsumer.as_asgi(), "/ws/grades/metrics/")
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        message = await communicator.receive_json_from()
        await communicator.disconnect()
        return message

    @patch("grades.consumers.get_metrics", return_value=SAMPLE)
    async def test_sends_counters_on_connect(self, _):
        message = await self._first_message()
        self.assertEqual(message["type"], "metrics")
        self.assertTrue(message["available"])
        self.assertEqual(message["promotions_succeeded"], 3)

    @patch("grades.consumers.get_metrics", return_value=None)
    async def test_redis_down(self, _):
        message = await self._first_message()
        self.assertFalse(message["available"])
        self.assertIsNone(message["archived_rows"])
