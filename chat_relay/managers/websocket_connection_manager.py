import asyncio

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from chat_relay.logging import logger
from chat_relay.managers.session_registry import (
    Session,
    SessionRegistry,
    session_registry,
)
from chat_relay.schemas.frames import OutboundFrame
from chat_relay.utils.metrics import (
    chat_broadcast_failures_total,
    ws_messages_sent_total,
)


def is_open(connection: WebSocket) -> bool:
    """Whether both sides of the connection are still connected."""
    return (
        connection.client_state == WebSocketState.CONNECTED
        and connection.application_state == WebSocketState.CONNECTED
    )


class ConnectionManager:
    """
    Sends frames to single connections and to every registered session.

    Recipients that cannot be reached during a broadcast are evicted from
    the session registry instead of failing the broadcast.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        """
        Initializes a new instance of the `ConnectionManager` class.

        Args:
            registry: Session registry that broadcasts are delivered to.
        """
        self.registry = registry

    async def send_to(self, connection: WebSocket, frame: OutboundFrame) -> None:
        """
        Sends a frame to one connection.

        Args:
            connection: The WebSocket connection to write to.
            frame: The frame to encode and send.

        Raises:
            WebSocketDisconnect, RuntimeError: If the connection is not open.
        """
        await connection.send_text(frame.encode())
        ws_messages_sent_total.inc()

    async def broadcast(
        self, frame: OutboundFrame, exclude: str | None = None
    ) -> None:
        """
        Broadcasts a frame to all registered sessions concurrently.

        Each recipient is sent to independently; a recipient whose
        connection is closed or whose send fails is removed from the
        registry and the remaining recipients still get the frame.

        Args:
            frame: The frame to be broadcast.
            exclude: Nickname of a session that must not receive the frame.
        """
        recipients = [
            (nickname, session)
            for nickname, session in self.registry.snapshot()
            if nickname != exclude
        ]
        if not recipients:
            return

        text = frame.encode()

        async def safe_send(nickname: str, session: Session) -> None:
            """
            Sends to a single session, evicting it on failure.

            Args:
                nickname: The registry key of the session.
                session: The session to send to.
            """
            connection = session.connection

            if not is_open(connection):
                logger.debug(
                    f"Connection {id(connection)} (key: {nickname}) is not "
                    "open, removing it"
                )
                self._evict(nickname, session)
                return

            try:
                await connection.send_text(text)
                ws_messages_sent_total.inc()
            except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
                # WebSocketDisconnect: Client disconnected
                # ConnectionError: Network errors
                # RuntimeError: WebSocket in invalid state
                logger.warning(
                    f"Failed to send to connection {id(connection)} "
                    f"(key: {nickname}): {e}"
                )
                self._evict(nickname, session)
            except Exception as e:
                logger.warning(
                    f"Unexpected error sending to connection {id(connection)} "
                    f"(key: {nickname}): {e}"
                )
                self._evict(nickname, session)

        await asyncio.gather(
            *[safe_send(nickname, session) for nickname, session in recipients],
            return_exceptions=True,
        )

    def _evict(self, nickname: str, session: Session) -> None:
        chat_broadcast_failures_total.inc()
        self.registry.remove(nickname, connection=session.connection)


connection_manager = ConnectionManager(session_registry)
