"""Request/response schemas for the event endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class UserEventRequest(BaseModel):
    """Manually emitted user event (defaults mirror an anonymous user action)."""

    event_type: str = Field(default="USER_ACTION", max_length=64)
    user_id: str = Field(default="unknown", max_length=64)
    user_details: str = Field(default="No details provided", max_length=2000)


class NotificationRequest(BaseModel):
    recipient: str = Field(default="unknown@example.com", max_length=255)
    subject: str = Field(default="Test Notification", max_length=255)
    content: str = Field(default="This is a test notification", max_length=4000)


class CustomMessageRequest(BaseModel):
    """Message for an arbitrary topic (admin only)."""

    topic: str = Field(default="user-events", min_length=1, max_length=255)
    key: str = Field(default="test-key", max_length=255)
    message: str = Field(default="Test message from API", max_length=4000)


class EventSentResponse(BaseModel):
    """Acknowledges that the event was handed to the publisher (delivery is asynchronous)."""

    message: str
    topic: str
    key: str
    status: str = "SENT"


class ConsumedEventsResponse(BaseModel):
    """Latest events on one topic, oldest first."""

    message: str
    topic: str
    count: int
    events: list[dict[str, Any]]
