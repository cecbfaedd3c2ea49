"""Unit tests for app.services.events: Redis stream publishing and event payloads."""

import json
import unittest
from unittest.mock import MagicMock

from redis.exceptions import RedisError

from app.core.exceptions import EventChannelUnavailableError
from app.services.events import (
    USER_CREATED,
    LoggingPublisher,
    RedisStreamPublisher,
    UserEventEmitter,
)
from support import RecordingPublisher


class TestRedisStreamPublisher(unittest.TestCase):
    def test_publish_appends_to_stream(self) -> None:
        client = MagicMock()
        client.xadd.return_value = b"1700000000000-0"
        publisher = RedisStreamPublisher(client, maxlen=500, max_workers=1)
        with self.assertLogs("app.services.events", level="INFO") as logs:
            publisher.publish("user-events", "42", {"eventType": USER_CREATED})
            publisher.close()
        client.xadd.assert_called_once()
        args, kwargs = client.xadd.call_args
        self.assertEqual(args[0], "user-events")
        self.assertEqual(args[1]["key"], "42")
        self.assertEqual(json.loads(args[1]["payload"]), {"eventType": USER_CREATED})
        self.assertEqual(kwargs, {"maxlen": 500, "approximate": True})
        self.assertTrue(any("entry_id=1700000000000-0" in line for line in logs.output))
        client.close.assert_called_once()

    def test_send_failure_is_logged_not_raised(self) -> None:
        client = MagicMock()
        client.xadd.side_effect = ConnectionError("redis down")
        publisher = RedisStreamPublisher(client, max_workers=1)
        with self.assertLogs("app.services.events", level="ERROR") as logs:
            publisher.publish("user-events", "42", {"eventType": USER_CREATED})
            publisher.close()
        self.assertTrue(any("Failed to send event" in line for line in logs.output))

    def test_publish_after_close_drops_event(self) -> None:
        client = MagicMock()
        publisher = RedisStreamPublisher(client, max_workers=1)
        publisher.close()
        with self.assertLogs("app.services.events", level="ERROR"):
            publisher.publish("user-events", "42", {})
        client.xadd.assert_not_called()

    def test_ping(self) -> None:
        client = MagicMock()
        client.ping.return_value = True
        self.assertTrue(RedisStreamPublisher(client).ping())
        client.ping.side_effect = ConnectionError("redis down")
        self.assertFalse(RedisStreamPublisher(client).ping())

    def test_read_returns_latest_entries_oldest_first(self) -> None:
        client = MagicMock()
        client.xrevrange.return_value = [
            (b"2-0", {b"key": b"k", b"payload": b'{"n": 2}'}),
            (b"1-0", {b"key": b"k", b"payload": b'{"n": 1}'}),
        ]
        events = RedisStreamPublisher(client).read("user-events", count=2)
        self.assertEqual(events, [{"n": 1}, {"n": 2}])
        client.xrevrange.assert_called_once_with("user-events", count=2)

    def test_entry_without_payload_reads_as_empty(self) -> None:
        client = MagicMock()
        client.xrevrange.return_value = [(b"1-0", {b"key": b"k"})]
        self.assertEqual(RedisStreamPublisher(client).read("user-events"), [{}])

    def test_read_failure_is_unavailable(self) -> None:
        client = MagicMock()
        client.xrevrange.side_effect = RedisError("redis down")
        with self.assertRaises(EventChannelUnavailableError) as ctx:
            RedisStreamPublisher(client).read("notifications")
        self.assertEqual(ctx.exception.status_code, 503)

    def test_clear_deletes_streams(self) -> None:
        client = MagicMock()
        with self.assertLogs("app.services.events", level="INFO"):
            RedisStreamPublisher(client).clear(["user-events", "notifications"])
        client.delete.assert_called_once_with("user-events", "notifications")

    def test_clear_failure_is_unavailable(self) -> None:
        client = MagicMock()
        client.delete.side_effect = RedisError("redis down")
        with self.assertRaises(EventChannelUnavailableError):
            RedisStreamPublisher(client).clear(["user-events"])


class TestLoggingPublisher(unittest.TestCase):
    def test_logs_event(self) -> None:
        with self.assertLogs("app.services.events", level="INFO") as logs:
            LoggingPublisher().publish("notifications", "a@example.com", {"subject": "Hi"})
        self.assertIn("notifications", logs.output[0])

    def test_keeps_history_for_read(self) -> None:
        publisher = LoggingPublisher(history=2)
        with self.assertLogs("app.services.events", level="INFO"):
            for n in range(3):
                publisher.publish("notifications", "a@example.com", {"n": n})
            publisher.publish("user-events", "7", {"n": 9})
        self.assertEqual(publisher.read("notifications"), [{"n": 1}, {"n": 2}])
        self.assertEqual(publisher.read("notifications", count=1), [{"n": 2}])
        self.assertEqual(publisher.read("audit"), [])

    def test_clear_drops_only_named_topics(self) -> None:
        publisher = LoggingPublisher()
        with self.assertLogs("app.services.events", level="INFO"):
            publisher.publish("notifications", "a@example.com", {"n": 1})
            publisher.publish("audit", "k", {"n": 2})
        publisher.clear(["notifications", "user-events"])
        self.assertEqual(publisher.read("notifications"), [])
        self.assertEqual(publisher.read("audit"), [{"n": 2}])


class TestUserEventEmitter(unittest.TestCase):
    def test_user_event_payload(self) -> None:
        publisher = RecordingPublisher()
        UserEventEmitter(publisher).send_user_event(USER_CREATED, "7", "details")
        topic, key, payload = publisher.events[0]
        self.assertEqual((topic, key), ("user-events", "7"))
        self.assertEqual(
            set(payload), {"eventType", "userId", "userDetails", "timestamp"}
        )
        self.assertEqual(payload["userDetails"], "details")

    def test_notification_payload(self) -> None:
        publisher = RecordingPublisher()
        UserEventEmitter(publisher, notifications_topic="mail").send_notification(
            "a@example.com", "Subject", "Body"
        )
        topic, key, payload = publisher.events[0]
        self.assertEqual((topic, key), ("mail", "a@example.com"))
        self.assertEqual(payload["subject"], "Subject")
        self.assertEqual(payload["content"], "Body")

    def test_custom_message(self) -> None:
        publisher = RecordingPublisher()
        UserEventEmitter(publisher).send_message("audit", "k1", "hello")
        self.assertEqual(publisher.events[0][:2], ("audit", "k1"))
        self.assertEqual(publisher.events[0][2]["message"], "hello")

    def test_publisher_error_is_swallowed_and_logged(self) -> None:
        emitter = UserEventEmitter(RecordingPublisher(fail=True))
        with self.assertLogs("app.services.events", level="ERROR"):
            emitter.send_user_event(USER_CREATED, "7", "details")


if __name__ == "__main__":
    unittest.main()
