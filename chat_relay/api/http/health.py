"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from chat_relay.managers.session_registry import session_registry
from chat_relay.utils.metrics import get_websocket_health_info

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    active_connections: int
    registered_sessions: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check() -> HealthResponse:
    """
    Check health status of the chat relay.

    The relay has no external dependencies, so it is healthy whenever it
    answers. The response also reports how many WebSocket connections are
    open and how many of them registered a nickname.

    Returns:
        HealthResponse: Health status and connection counts.
    """
    return HealthResponse(
        **get_websocket_health_info(registered_sessions=len(session_registry))
    )
