"""Health check endpoint with database and event channel checks."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_event_publisher
from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.events import EventPublisher, RedisStreamPublisher

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    publisher: Annotated[EventPublisher, Depends(get_event_publisher)],
) -> HealthResponse:
    """
    Return service health status, database connectivity and event channel status.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    if isinstance(publisher, RedisStreamPublisher):
        events_status = "connected" if publisher.ping() else "disconnected"
    else:
        events_status = "disabled"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        events=events_status,
    )
