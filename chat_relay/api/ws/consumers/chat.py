from datetime import datetime

from fastapi import APIRouter
from starlette.websockets import WebSocket

from chat_relay.api.ws.websocket import ChatWebSocketEndpoint
from chat_relay.constants import (
    INCORRECT_REQUEST_MSG,
    JOINED_MSG,
    NICKNAME_TAKEN_MSG,
)
from chat_relay.exceptions import ProtocolError
from chat_relay.logging import logger, set_log_context
from chat_relay.managers.session_registry import session_registry
from chat_relay.managers.websocket_connection_manager import (
    connection_manager,
)
from chat_relay.schemas.frames import (
    ChatFrame,
    ChatRequest,
    ErrorFrame,
    RegistrationRequest,
    SystemFrame,
    parse_request,
)
from chat_relay.settings import app_settings
from chat_relay.utils.metrics import (
    chat_registration_conflicts_total,
    ws_messages_received_total,
)

router = APIRouter()


class Chat(ChatWebSocketEndpoint):
    """
    Chat consumer speaking the ``|``-delimited frame protocol.

    A connection starts unregistered. A ``REG`` frame registers it under a
    nickname; from then on two-field frames are relayed to every registered
    session. Anything else is answered with an ``ERR`` frame to the sender
    only.
    """

    async def on_receive(self, websocket: WebSocket, data: str) -> None:
        """
        Handles one inbound frame.

        Args:
            websocket: The WebSocket connection instance
            data: Text of the received frame
        """
        ws_messages_received_total.inc()

        try:
            request = parse_request(data)
        except ProtocolError as exc:
            logger.debug(f"Received invalid frame: {data!r}")
            await connection_manager.send_to(
                websocket, ErrorFrame(text=exc.message)
            )
            return

        if isinstance(request, RegistrationRequest):
            logger.info(data)
            await self.register(websocket, request)
        elif self.nickname is None:
            logger.debug(f"Chat frame from unregistered client: {data!r}")
            await connection_manager.send_to(
                websocket, ErrorFrame(text=INCORRECT_REQUEST_MSG)
            )
        else:
            await self.relay(request)

    async def register(
        self, websocket: WebSocket, request: RegistrationRequest
    ) -> None:
        """
        Registers this connection under the requested nickname.

        On success every other session is told that the user joined. A
        taken nickname is reported to the sender only and leaves the
        connection's state untouched.

        Args:
            websocket: The WebSocket connection instance
            request: The parsed registration frame
        """
        if not session_registry.try_register(
            request.nickname, request.color_code, websocket
        ):
            chat_registration_conflicts_total.inc()
            logger.debug(f"Nickname {request.nickname} is taken")
            await connection_manager.send_to(
                websocket, ErrorFrame(text=NICKNAME_TAKEN_MSG)
            )
            return

        # TODO: release the previous nickname when an already registered
        # connection registers again under a new one.
        self.nickname = request.nickname
        self.color_code = request.color_code
        set_log_context(nickname=self.nickname)

        await connection_manager.broadcast(
            SystemFrame(text=JOINED_MSG.format(nickname=self.nickname)),
            exclude=self.nickname,
        )

    async def relay(self, request: ChatRequest) -> None:
        """Broadcasts a chat message to every session, the sender included."""
        frame = ChatFrame(
            nickname=self.nickname,
            time=datetime.now().strftime(app_settings.CHAT_TIME_FORMAT),
            color_code=self.color_code,
            text=request.text,
        )
        await connection_manager.broadcast(frame)


for path in app_settings.WS_PATHS:
    router.add_websocket_route(path, Chat)
