"""
Prometheus metrics for WebSocket connection and chat session monitoring.

This module defines metrics for tracking WebSocket connections, message
rates, registered chat sessions and broadcast delivery failures.
"""

from chat_relay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
)

# WebSocket Connection Metrics
ws_connections_active = _get_or_create_gauge(
    "ws_connections_active", "Number of active WebSocket connections"
)

ws_connections_total = _get_or_create_counter(
    "ws_connections_total",
    "Total WebSocket connections",
    ["status"],  # accepted, closed, failed
)

ws_messages_received_total = _get_or_create_counter(
    "ws_messages_received_total", "Total WebSocket messages received"
)

ws_messages_sent_total = _get_or_create_counter(
    "ws_messages_sent_total", "Total WebSocket messages sent"
)

# Chat Session Metrics
chat_sessions_registered = _get_or_create_gauge(
    "chat_sessions_registered", "Number of registered chat sessions"
)

chat_registration_conflicts_total = _get_or_create_counter(
    "chat_registration_conflicts_total",
    "Registrations rejected because the nickname was taken",
)

chat_broadcast_failures_total = _get_or_create_counter(
    "chat_broadcast_failures_total",
    "Broadcast deliveries that failed and evicted the recipient",
)


# Helper Functions


def get_active_websocket_connections() -> int:
    """
    Get the current number of active WebSocket connections.

    Returns:
        int: Number of active WebSocket connections.
    """
    try:
        return int(ws_connections_active._value.get())
    except (AttributeError, ValueError):
        return 0


def get_websocket_health_info(registered_sessions: int) -> dict[str, int | str]:
    """
    Get WebSocket health information from metrics.

    Args:
        registered_sessions: Current size of the session registry.

    Returns:
        dict[str, int | str]: Dictionary with WebSocket health status:
            - status: always "healthy" while the process serves requests
            - active_connections: Current active connections count
            - registered_sessions: Connections that completed registration
    """
    return {
        "status": "healthy",
        "active_connections": get_active_websocket_connections(),
        "registered_sessions": registered_sessions,
    }


__all__ = [
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "chat_sessions_registered",
    "chat_registration_conflicts_total",
    "chat_broadcast_failures_total",
    "get_active_websocket_connections",
    "get_websocket_health_info",
]
