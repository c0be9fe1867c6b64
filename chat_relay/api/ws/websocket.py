import uuid
from typing import Any

from starlette import status
from starlette.endpoints import WebSocketEndpoint
from starlette.types import Receive, Scope, Send
from starlette.websockets import WebSocket, WebSocketState

from chat_relay.constants import DEFAULT_COLOR_CODE, LEFT_MSG, WS_CLOSE_REASON
from chat_relay.logging import clear_log_context, logger, set_log_context
from chat_relay.managers.session_registry import session_registry
from chat_relay.managers.websocket_connection_manager import (
    connection_manager,
)
from chat_relay.schemas.frames import SystemFrame
from chat_relay.utils.metrics import ws_connections_active, ws_connections_total


class ChatWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    WebSocket endpoint owning one chat connection.

    Starlette creates one instance per accepted connection, so the
    nickname and color code stored on the instance belong to this
    connection alone. Other connections reach it only through the
    session registry.
    """

    encoding = None  # Text frames, with binary frames decoded as UTF-8

    def __init__(self, scope: Scope, receive: Receive, send: Send) -> None:
        super().__init__(scope, receive, send)
        self.connection_id = uuid.uuid4().hex[:8]
        self.nickname: str | None = None
        self.color_code: int = DEFAULT_COLOR_CODE
        self.accepted = False

    async def dispatch(self) -> None:
        """
        Runs the receive loop of the connection until it ends.

        The loop ends on a close frame from the client, or on any error
        raised while handling a frame. Errors are logged here and never
        escape to the server: a failure ends only this connection, after
        which `on_disconnect` cleans up its session.
        """
        set_log_context(connection_id=self.connection_id)

        websocket = WebSocket(self.scope, receive=self.receive, send=self.send)
        close_code = status.WS_1000_NORMAL_CLOSURE

        try:
            await self.on_connect(websocket)

            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.receive":
                    data = await self.decode(websocket, message)
                    await self.on_receive(websocket, data)
                elif message["type"] == "websocket.disconnect":
                    close_code = int(
                        message.get("code") or status.WS_1000_NORMAL_CLOSURE
                    )
                    break
        except Exception as exc:
            close_code = status.WS_1011_INTERNAL_ERROR
            ws_connections_total.labels(status="failed").inc()
            logger.exception(f"Exception: {exc}")
        finally:
            await self.on_disconnect(websocket, close_code)
            clear_log_context()

    async def decode(self, websocket: WebSocket, message: dict[str, Any]) -> str:
        """
        Decode incoming WebSocket message to text.

        Args:
            websocket: WebSocket connection instance
            message: Raw message dict from WebSocket

        Returns:
            The frame text; binary payloads are decoded as UTF-8.
        """
        if message.get("text") is not None:
            return message["text"]
        return (message.get("bytes") or b"").decode("utf-8", errors="replace")

    async def on_connect(self, websocket: WebSocket) -> None:
        """Accepts the connection; the client still has to register."""
        await websocket.accept()
        self.accepted = True

        ws_connections_total.labels(status="accepted").inc()
        ws_connections_active.inc()
        logger.debug("Client connected")

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        """
        Handles WebSocket client disconnection and cleanup.

        This method performs the following tasks:
        1. Removes every session bound to this connection from the registry
        2. Tells all remaining sessions that the client left, under the
           nickname it registered last
        3. Closes the connection if the client did not close it already
        4. Logs disconnection event with nickname and close code
        """
        session_registry.remove_connection(websocket)
        if self.nickname is not None:
            await connection_manager.broadcast(
                SystemFrame(text=LEFT_MSG.format(nickname=self.nickname))
            )

        if (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state != WebSocketState.DISCONNECTED
        ):
            try:
                await websocket.close(code=close_code, reason=WS_CLOSE_REASON)
            except Exception as exc:
                logger.warning(f"Failed to close connection: {exc}")

        if self.accepted:
            ws_connections_total.labels(status="closed").inc()
            ws_connections_active.dec()
        logger.info(
            f"{self.nickname or 'Unknown'} disconnected with code {close_code}"
        )
