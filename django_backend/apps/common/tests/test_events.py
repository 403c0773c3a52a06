from datetime import datetime, timezone
from unittest import mock

from django.test import SimpleTestCase, override_settings

from apps.common.events import EventPayload
from apps.common.events.base import EventPublisherFactory
from apps.common.events.memory_publisher import MemoryEventPublisher
from apps.common.middleware import JWTWebSocketMiddleware
from apps.tasks.producer import TaskEventType, publish_task_event


class EventPayloadTest(SimpleTestCase):

    def test_to_dict(self):
        stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        payload = EventPayload("task_created", 3, team_id=9, timestamp=stamp, data={"title": "x"})

        self.assertEqual(payload.to_dict(), {
            "event_type": "task_created",
            "user_id": 3,
            "team_id": 9,
            "timestamp": "2024-05-01T12:00:00+00:00",
            "data": {"title": "x"},
            "metadata": {},
        })


class EventPublisherFactoryTest(SimpleTestCase):

    def setUp(self):
        EventPublisherFactory.reset_publisher()

    def tearDown(self):
        EventPublisherFactory.reset_publisher()

    def test_memory_publisher_is_shared(self):
        publisher = EventPublisherFactory.get_publisher()
        self.assertIsInstance(publisher, MemoryEventPublisher)
        self.assertIs(publisher, EventPublisherFactory.get_publisher())

    @override_settings(EVENT_PUBLISHER_TYPE="carrier-pigeon")
    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            EventPublisherFactory.get_publisher()

    def test_task_events_are_keyed_by_team(self):
        self.assertTrue(publish_task_event(TaskEventType.TASK_COMPLETED, 4, {"xp_earned": 20}, user_id=2))

        events = EventPublisherFactory.get_publisher().get_events("task-events")
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["key"], "4")
        self.assertEqual(events[0]["team_id"], 4)
        self.assertEqual(events[0]["event_type"], "task_completed")

    def test_publish_failures_are_logged(self):
        with mock.patch.object(MemoryEventPublisher, "publish", side_effect=RuntimeError("down")):
            with self.assertLogs("apps.tasks.producer.events", level="ERROR"):
                self.assertFalse(publish_task_event(TaskEventType.TASK_CREATED, 4, {}))

    def test_clear_events(self):
        publisher = EventPublisherFactory.get_publisher()
        publisher.publish("a", EventPayload("x", 1))
        publisher.publish("b", EventPayload("y", 1))

        publisher.clear_events("a")
        self.assertEqual(publisher.get_events("a"), [])
        publisher.clear_events()
        self.assertEqual(publisher.events, {})


class WebSocketTokenTest(SimpleTestCase):

    def setUp(self):
        self.middleware = JWTWebSocketMiddleware(inner=mock.Mock())

    def test_cookie_token(self):
        scope = {"headers": [(b"cookie", b"theme=dark; access_token=abc.def")]}
        self.assertEqual(self.middleware.get_token(scope), "abc.def")

    def test_bearer_header(self):
        scope = {"headers": [(b"authorization", b"Bearer abc.def")]}
        self.assertEqual(self.middleware.get_token(scope), "abc.def")

    def test_no_token(self):
        self.assertIsNone(self.middleware.get_token({"headers": []}))
