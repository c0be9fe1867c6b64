import threading

from pydantic import BaseModel, ConfigDict
from starlette.websockets import WebSocket

from chat_relay.logging import logger
from chat_relay.utils.metrics import chat_sessions_registered


class Session(BaseModel):
    """
    A registered chat user bound to its live connection.

    The registry only references the connection; the endpoint that
    accepted it is responsible for closing it.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    nickname: str
    color_code: int
    connection: WebSocket


class SessionRegistry:
    """
    Registry of chat sessions keyed by nickname.

    Shared by every connection handler. All operations take a lock that is
    held only for the dict operation itself, never across an ``await``, so
    the registry is safe to use from any number of tasks or threads.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def try_register(
        self, nickname: str, color_code: int, connection: WebSocket
    ) -> bool:
        """
        Register a session if the nickname is free.

        Args:
            nickname: Requested nickname, the registry key.
            color_code: Display color chosen by the client.
            connection: The client's WebSocket connection.

        Returns:
            True if the session was added, False if the nickname is taken.
        """
        with self._lock:
            if nickname in self._sessions:
                return False
            self._sessions[nickname] = Session(
                nickname=nickname, color_code=color_code, connection=connection
            )
            chat_sessions_registered.set(len(self._sessions))

        logger.debug(
            f"websocket object ({id(connection)}) registered as {nickname}"
        )
        return True

    def remove(
        self, nickname: str, connection: WebSocket | None = None
    ) -> Session | None:
        """
        Remove a session. Removing an absent nickname is a no-op.

        Args:
            nickname: Nickname of the session to remove.
            connection: When given, the session is removed only if it is
                still bound to this connection.

        Returns:
            The removed session, or None if nothing was removed.
        """
        with self._lock:
            session = self._sessions.get(nickname)
            if session is None:
                return None
            if connection is not None and session.connection is not connection:
                return None
            del self._sessions[nickname]
            chat_sessions_registered.set(len(self._sessions))

        logger.debug(
            f"websocket object ({id(session.connection)}) unregistered "
            f"from {nickname}"
        )
        return session

    def remove_connection(self, connection: WebSocket) -> list[str]:
        """
        Remove every session bound to a connection.

        A connection that registered more than once owns several entries;
        all of them go when the connection ends.

        Args:
            connection: The connection whose sessions are removed.

        Returns:
            Nicknames of the removed sessions.
        """
        with self._lock:
            nicknames = [
                nickname
                for nickname, session in self._sessions.items()
                if session.connection is connection
            ]
            for nickname in nicknames:
                del self._sessions[nickname]
            chat_sessions_registered.set(len(self._sessions))

        if nicknames:
            logger.debug(
                f"websocket object ({id(connection)}) unregistered "
                f"from {', '.join(nicknames)}"
            )
        return nicknames

    def snapshot(self) -> list[tuple[str, Session]]:
        """
        Copy of the current sessions, safe to iterate while the registry
        keeps changing.
        """
        with self._lock:
            return list(self._sessions.items())

    def get(self, nickname: str) -> Session | None:
        with self._lock:
            return self._sessions.get(nickname)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            chat_sessions_registered.set(0)

    def __contains__(self, nickname: object) -> bool:
        with self._lock:
            return nickname in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


session_registry = SessionRegistry()
