"""
User lifecycle events: fire-and-forget publishing to Redis streams.

publish() hands the send to a thread pool and returns immediately. The
completion callback only logs; a failed send never reaches the caller and
never undoes the user change that triggered it.

The same streams can be read back (the latest entries, oldest first) and
cleared by administrators.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict, deque
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from redis import Redis
from redis.exceptions import RedisError

from app.core.exceptions import EventChannelUnavailableError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

USER_CREATED = "USER_CREATED"
USER_UPDATED = "USER_UPDATED"
USER_DELETED = "USER_DELETED"


class EventPublisher(Protocol):
    def publish(self, topic: str, partition_key: str, payload: dict[str, Any]) -> None: ...


@runtime_checkable
class EventReader(Protocol):
    """Read side of the channel: inspect what was published, or drop it."""

    def read(self, topic: str, count: int = 100) -> list[dict[str, Any]]: ...

    def clear(self, topics: Iterable[str]) -> None: ...


def _entry_payload(fields: dict) -> dict[str, Any]:
    raw = fields.get(b"payload", fields.get("payload"))
    if raw is None:
        return {}
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


class RedisStreamPublisher:
    """
    Appends each event to the stream named after the topic (XADD), with the
    partition key and the JSON payload as entry fields. Streams are capped
    at roughly maxlen entries.
    """

    def __init__(
        self,
        client: Redis,
        maxlen: int = 10000,
        max_workers: int = 2,
    ) -> None:
        self.client = client
        self.maxlen = maxlen
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="event-publisher"
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisStreamPublisher:
        return cls(
            Redis.from_url(settings.REDIS_URL),
            maxlen=settings.EVENT_STREAM_MAXLEN,
            max_workers=settings.EVENT_PUBLISHER_WORKERS,
        )

    def publish(self, topic: str, partition_key: str, payload: dict[str, Any]) -> None:
        body = json.dumps(payload, default=str)
        logger.info("Sending event to %s: key=%s", topic, partition_key)
        try:
            future = self._executor.submit(self._send, topic, partition_key, body)
        except RuntimeError as e:
            # Executor already shut down (application stopping).
            logger.error("Event dropped for %s: key=%s: %s", topic, partition_key, e)
            return
        future.add_done_callback(
            lambda f: self._on_complete(f, topic, partition_key)
        )

    def _send(self, topic: str, partition_key: str, body: str) -> Any:
        return self.client.xadd(
            topic,
            {"key": partition_key, "payload": body},
            maxlen=self.maxlen,
            approximate=True,
        )

    @staticmethod
    def _on_complete(future: Future, topic: str, partition_key: str) -> None:
        exc = future.exception()
        if exc is None:
            entry_id = future.result()
            if isinstance(entry_id, bytes):
                entry_id = entry_id.decode("utf-8")
            logger.info(
                "Event sent to %s: key=%s, entry_id=%s", topic, partition_key, entry_id
            )
        else:
            logger.error(
                "Failed to send event to %s: key=%s",
                topic,
                partition_key,
                exc_info=exc,
            )

    def read(self, topic: str, count: int = 100) -> list[dict[str, Any]]:
        """The latest count entries of the stream, oldest first."""
        try:
            entries = self.client.xrevrange(topic, count=count)
        except RedisError as e:
            raise EventChannelUnavailableError(f"Cannot read events from {topic}: {e}") from e
        return [_entry_payload(fields) for _, fields in reversed(entries)]

    def clear(self, topics: Iterable[str]) -> None:
        names = list(topics)
        try:
            self.client.delete(*names)
        except RedisError as e:
            raise EventChannelUnavailableError(f"Cannot clear event streams: {e}") from e
        logger.info("Event streams cleared: %s", ", ".join(names))

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except Exception:
            return False

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.client.close()


class LoggingPublisher:
    """
    Publisher used when EVENTS_ENABLED is false. Events go to the log and the
    latest history entries per topic are kept in memory for read().
    """

    def __init__(self, history: int = 1000) -> None:
        self._lock = threading.Lock()
        self._events: dict[str, deque] = defaultdict(lambda: deque(maxlen=history))

    def publish(self, topic: str, partition_key: str, payload: dict[str, Any]) -> None:
        body = json.dumps(payload, default=str)
        logger.info(
            "Event (not published) to %s: key=%s, payload=%s", topic, partition_key, body
        )
        with self._lock:
            self._events[topic].append(json.loads(body))

    def read(self, topic: str, count: int = 100) -> list[dict[str, Any]]:
        with self._lock:
            events = list(self._events.get(topic, ()))
        return events[-count:] if count > 0 else []

    def clear(self, topics: Iterable[str]) -> None:
        with self._lock:
            for topic in topics:
                self._events.pop(topic, None)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


class UserEventEmitter:
    """Builds user and notification events and hands them to a publisher."""

    def __init__(
        self,
        publisher: EventPublisher,
        user_events_topic: str = "user-events",
        notifications_topic: str = "notifications",
    ) -> None:
        self.publisher = publisher
        self.user_events_topic = user_events_topic
        self.notifications_topic = notifications_topic

    @classmethod
    def from_settings(cls, publisher: EventPublisher, settings: Settings) -> UserEventEmitter:
        return cls(
            publisher,
            user_events_topic=settings.USER_EVENTS_TOPIC,
            notifications_topic=settings.NOTIFICATIONS_TOPIC,
        )

    def send_user_event(self, event_type: str, user_id: str, user_details: str) -> None:
        self._publish(
            self.user_events_topic,
            user_id,
            {
                "eventType": event_type,
                "userId": user_id,
                "userDetails": user_details,
                "timestamp": _timestamp(),
            },
        )

    def send_notification(self, recipient: str, subject: str, content: str) -> None:
        self._publish(
            self.notifications_topic,
            recipient,
            {
                "recipient": recipient,
                "subject": subject,
                "content": content,
                "timestamp": _timestamp(),
            },
        )

    def send_message(self, topic: str, key: str, message: str) -> None:
        self._publish(topic, key, {"message": message, "timestamp": _timestamp()})

    def _publish(self, topic: str, key: str, payload: dict[str, Any]) -> None:
        try:
            self.publisher.publish(topic, key, payload)
        except Exception:
            logger.exception("Event publisher rejected event for %s: key=%s", topic, key)
