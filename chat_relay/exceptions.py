"""
Custom exception classes for the application.

This module defines the exceptions raised while handling chat frames.
Each carries the human-readable text that is sent back to the client.
"""

from chat_relay.constants import INCORRECT_REQUEST_MSG


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    Attributes:
        message: Human-readable error message, sent to the client
            as the text of an ``ERR`` frame.
    """

    def __init__(self, message: str):
        """
        Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class ProtocolError(AppException):
    """
    Inbound frame does not match any known shape.

    Raised for frames with the wrong number of fields. The connection
    stays open; only the sender is told about the error.
    """

    def __init__(self, message: str = INCORRECT_REQUEST_MSG):
        super().__init__(message)
