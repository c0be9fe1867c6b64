"""
End-to-end chat tests over real WebSocket sessions.

Every client talks to the full application through the TestClient. A
client learns that its previous frames were handled by sending an
invalid frame and waiting for the error that only it receives.
"""

import re
from unittest.mock import AsyncMock, patch

import pytest
from starlette import status
from starlette.websockets import WebSocketDisconnect

from chat_relay.api.ws.consumers.chat import Chat
from chat_relay.constants import DEFAULT_COLOR_CODE
from chat_relay.managers.session_registry import session_registry

WS_PATH = "/send"


def sync(ws) -> None:
    """Waits until every frame sent so far by `ws` has been handled."""
    ws.send_text("ping")
    assert ws.receive_text() == "ERR|Incorrect request"


def register(ws, nickname: str, color_code: int | str) -> None:
    """Registers `ws`, failing if the server answers with an error."""
    ws.send_text(f"REG|{nickname}|{color_code}")
    sync(ws)


def chat_pattern(nickname: str, color_code: int, text: str) -> str:
    return rf"{re.escape(nickname)}\|\d{{2}}:\d{{2}}\|{color_code}\|{re.escape(text)}"


class TestRegistration:
    def test_nickname_taken(self, client):
        with client.websocket_connect(WS_PATH) as alice:
            register(alice, "alice", 1)

            with client.websocket_connect(WS_PATH) as impostor:
                impostor.send_text("REG|alice|2")
                assert impostor.receive_text() == "ERR|Nickname is taken already"

            assert session_registry.get("alice").color_code == 1

            # The original connection still owns the nickname
            alice.send_text("x|still here")
            assert re.fullmatch(
                chat_pattern("alice", 1, "still here"), alice.receive_text()
            )

    def test_unparsable_color(self, client):
        with client.websocket_connect(WS_PATH) as alice:
            register(alice, "alice", "notanumber")

            assert session_registry.get("alice").color_code == DEFAULT_COLOR_CODE

    def test_join_notice_goes_to_others_only(self, client):
        with client.websocket_connect(WS_PATH) as alice:
            register(alice, "alice", 1)

            with client.websocket_connect(WS_PATH) as bob:
                register(bob, "bob", 2)

                assert alice.receive_text() == "SYS|bob joined the chat"

    def test_trailing_slash_path(self, client):
        with client.websocket_connect(WS_PATH + "/") as alice:
            register(alice, "alice", 1)

            assert "alice" in session_registry


class TestChat:
    def test_chat_is_relayed_to_everyone(self, client):
        with (
            client.websocket_connect(WS_PATH) as alice,
            client.websocket_connect(WS_PATH) as bob,
        ):
            register(alice, "alice", 1)
            register(bob, "bob", 2)
            assert alice.receive_text() == "SYS|bob joined the chat"

            alice.send_text("x|hello")

            expected = chat_pattern("alice", 1, "hello")
            assert re.fullmatch(expected, bob.receive_text())
            assert re.fullmatch(expected, alice.receive_text())

    def test_per_sender_order_is_kept(self, client):
        with (
            client.websocket_connect(WS_PATH) as alice,
            client.websocket_connect(WS_PATH) as bob,
        ):
            register(alice, "alice", 1)
            register(bob, "bob", 2)
            assert alice.receive_text() == "SYS|bob joined the chat"

            for number in range(5):
                alice.send_text(f"x|message {number}")

            received = [bob.receive_text().split("|")[-1] for _ in range(5)]
            assert received == [f"message {number}" for number in range(5)]

    def test_unregistered_chat_is_rejected(self, client):
        with client.websocket_connect(WS_PATH) as bob:
            register(bob, "bob", 2)

            with client.websocket_connect(WS_PATH) as stranger:
                stranger.send_text("x|hello")
                assert stranger.receive_text() == "ERR|Incorrect request"

            # Nothing was broadcast before bob's own error comes back
            sync(bob)

    def test_binary_frames(self, client):
        with client.websocket_connect(WS_PATH) as alice:
            alice.send_bytes(b"REG|alice|1")
            sync(alice)

            assert "alice" in session_registry


class TestDisconnect:
    def test_departure_notice(self, client):
        with client.websocket_connect(WS_PATH) as bob:
            register(bob, "bob", 2)

            with client.websocket_connect(WS_PATH) as alice:
                register(alice, "alice", 1)
                assert bob.receive_text() == "SYS|alice joined the chat"

                # Leaving the block would cancel alice's handler mid-cleanup
                alice.close()
                assert bob.receive_text() == "SYS|alice left the chat"

            assert "alice" not in session_registry

            # The nickname is free again
            with client.websocket_connect(WS_PATH) as newcomer:
                register(newcomer, "alice", 3)
                assert session_registry.get("alice").color_code == 3

    def test_handler_error_is_isolated(self, client):
        with client.websocket_connect(WS_PATH) as bob:
            register(bob, "bob", 2)

            with patch.object(
                Chat, "relay", AsyncMock(side_effect=RuntimeError("boom"))
            ):
                with client.websocket_connect(WS_PATH) as alice:
                    register(alice, "alice", 1)
                    assert bob.receive_text() == "SYS|alice joined the chat"

                    alice.send_text("x|hello")

                    with pytest.raises(WebSocketDisconnect) as exc_info:
                        alice.receive_text()
                    assert exc_info.value.code == status.WS_1011_INTERNAL_ERROR

            assert bob.receive_text() == "SYS|alice left the chat"
            assert "alice" not in session_registry
            sync(bob)


class TestHttp:
    @pytest.mark.parametrize("method", ["get", "post", "delete"])
    def test_plain_http_is_rejected(self, client, method):
        response = getattr(client, method)(WS_PATH)

        assert response.status_code == 400
        assert response.text == "WebSocket only"

    def test_plain_http_trailing_slash(self, client):
        response = client.get(WS_PATH + "/")

        assert response.status_code == 400
        assert response.text == "WebSocket only"

    def test_health(self, client):
        with client.websocket_connect(WS_PATH) as alice:
            register(alice, "alice", 1)

            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["registered_sessions"] == 1

    def test_metrics(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "chat_sessions_registered" in response.text
        assert "ws_connections_total" in response.text
