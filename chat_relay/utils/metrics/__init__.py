"""
Prometheus metrics definitions and utilities.

All metrics used by the chat relay are re-exported here:

    from chat_relay.utils.metrics import ws_connections_active
"""

from chat_relay.utils.metrics._helpers import _get_or_create_gauge
from chat_relay.utils.metrics.websocket import (
    chat_broadcast_failures_total,
    chat_registration_conflicts_total,
    chat_sessions_registered,
    get_active_websocket_connections,
    get_websocket_health_info,
    ws_connections_active,
    ws_connections_total,
    ws_messages_received_total,
    ws_messages_sent_total,
)

app_info = _get_or_create_gauge(
    "app_info",
    "Application information",
    ["version", "python_version", "environment"],
)

__all__ = [
    # WebSocket metrics
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "get_active_websocket_connections",
    "get_websocket_health_info",
    # Chat session metrics
    "chat_sessions_registered",
    "chat_registration_conflicts_total",
    "chat_broadcast_failures_total",
    # Application metrics
    "app_info",
]
