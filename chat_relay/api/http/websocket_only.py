"""Plain HTTP requests on the WebSocket path are rejected."""

from fastapi import APIRouter, status
from fastapi.responses import PlainTextResponse

from chat_relay.constants import WEBSOCKET_ONLY_MSG
from chat_relay.settings import app_settings

router = APIRouter()


async def websocket_only() -> PlainTextResponse:
    """Answers any non-WebSocket request with 400 Bad Request."""
    return PlainTextResponse(
        WEBSOCKET_ONLY_MSG, status_code=status.HTTP_400_BAD_REQUEST
    )


for path in app_settings.WS_PATHS:
    router.add_api_route(
        path,
        websocket_only,
        methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        include_in_schema=False,
    )
