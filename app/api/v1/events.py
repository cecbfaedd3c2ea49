"""
Manual event publishing endpoints (user events, notifications, custom messages)
and read-back of what was published.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_event_emitter, get_event_reader, http_error, require
from app.core.exceptions import UserManagementError
from app.schemas.auth import Principal
from app.schemas.events import (
    ConsumedEventsResponse,
    CustomMessageRequest,
    EventSentResponse,
    NotificationRequest,
    UserEventRequest,
)
from app.schemas.user import MessageResponse
from app.services.endpoint_policies import ADMIN_ONLY, ADMIN_OR_MANAGER
from app.services.events import EventReader, UserEventEmitter

router = APIRouter()

Emitter = Annotated[UserEventEmitter, Depends(get_event_emitter)]
Reader = Annotated[EventReader, Depends(get_event_reader)]


@router.post("/user-event", response_model=EventSentResponse)
def send_user_event(
    body: UserEventRequest,
    _principal: Annotated[Principal, Depends(require(ADMIN_OR_MANAGER))],
    emitter: Emitter,
) -> EventSentResponse:
    emitter.send_user_event(body.event_type, body.user_id, body.user_details)
    return EventSentResponse(
        message="User event sent successfully",
        topic=emitter.user_events_topic,
        key=body.user_id,
    )


@router.post("/notification", response_model=EventSentResponse)
def send_notification(
    body: NotificationRequest,
    _principal: Annotated[Principal, Depends(require(ADMIN_OR_MANAGER))],
    emitter: Emitter,
) -> EventSentResponse:
    emitter.send_notification(body.recipient, body.subject, body.content)
    return EventSentResponse(
        message="Notification sent successfully",
        topic=emitter.notifications_topic,
        key=body.recipient,
    )


@router.post("/custom-message", response_model=EventSentResponse)
def send_custom_message(
    body: CustomMessageRequest,
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    emitter: Emitter,
) -> EventSentResponse:
    """Publish to any topic (admin only)."""
    emitter.send_message(body.topic, body.key, body.message)
    return EventSentResponse(
        message="Custom message sent successfully",
        topic=body.topic,
        key=body.key,
    )


def _consumed(reader: EventReader, topic: str, limit: int, label: str) -> ConsumedEventsResponse:
    try:
        events = reader.read(topic, limit)
    except UserManagementError as e:
        raise http_error(e) from e
    return ConsumedEventsResponse(
        message=f"Retrieved consumed {label}",
        topic=topic,
        count=len(events),
        events=events,
    )


@router.get("/consumed/user-events", response_model=ConsumedEventsResponse)
def get_consumed_user_events(
    _principal: Annotated[Principal, Depends(require(ADMIN_OR_MANAGER))],
    emitter: Emitter,
    reader: Reader,
    limit: int = Query(100, ge=1, le=1000),
) -> ConsumedEventsResponse:
    """Latest user lifecycle events, oldest first."""
    return _consumed(reader, emitter.user_events_topic, limit, "user events")


@router.get("/consumed/notifications", response_model=ConsumedEventsResponse)
def get_consumed_notifications(
    _principal: Annotated[Principal, Depends(require(ADMIN_OR_MANAGER))],
    emitter: Emitter,
    reader: Reader,
    limit: int = Query(100, ge=1, le=1000),
) -> ConsumedEventsResponse:
    return _consumed(reader, emitter.notifications_topic, limit, "notifications")


@router.delete("/consumed/clear", response_model=MessageResponse)
def clear_consumed(
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    emitter: Emitter,
    reader: Reader,
) -> MessageResponse:
    """Drop the user-events and notifications history (admin only)."""
    try:
        reader.clear([emitter.user_events_topic, emitter.notifications_topic])
    except UserManagementError as e:
        raise http_error(e) from e
    return MessageResponse(message="All consumed messages cleared successfully")
