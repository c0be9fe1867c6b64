"""
Application-level constants for hardcoded protocol behavior.

These values define the wire protocol spoken by chat clients and should
NEVER be changed via environment variables or configuration.

For configurable values (port, paths, logging), see chat_relay/settings.py.
"""

# ============================================================================
# Wire Protocol
# ============================================================================

# Separator between the fields of every frame; empty fields are dropped
FIELD_DELIMITER = "|"

# First field of a client registration frame: REG|<nickname>|<colorCode>
REGISTRATION_TAG = "REG"

# First field of server error and system notice frames
ERROR_TAG = "ERR"
SYSTEM_TAG = "SYS"

# Console color code "White", used when a client sends no usable color
DEFAULT_COLOR_CODE = 15

# Color codes are 32-bit signed integers on the client side
COLOR_CODE_MIN = -(2**31)
COLOR_CODE_MAX = 2**31 - 1


# ============================================================================
# Protocol Messages
# ============================================================================

INCORRECT_REQUEST_MSG = "Incorrect request"
NICKNAME_TAKEN_MSG = "Nickname is taken already"
JOINED_MSG = "{nickname} joined the chat"
LEFT_MSG = "{nickname} left the chat"

# Body of the response to plain HTTP requests on the WebSocket path
WEBSOCKET_ONLY_MSG = "WebSocket only"


# ============================================================================
# WebSocket Protocol Constants
# ============================================================================

# Reason sent with the close frame when a handler ends the connection
WS_CLOSE_REASON = "Closed"

# Reason sent to clients still connected when the server shuts down
WS_SHUTDOWN_REASON = "Server shutting down"

