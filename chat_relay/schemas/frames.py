"""
Models for the frames exchanged over a chat WebSocket connection.

A frame is a single text message whose fields are joined by
``FIELD_DELIMITER``. Empty fields are dropped when a frame is parsed.
"""

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator
from typing_extensions import Annotated

from chat_relay.constants import (
    COLOR_CODE_MAX,
    COLOR_CODE_MIN,
    DEFAULT_COLOR_CODE,
    ERROR_TAG,
    FIELD_DELIMITER,
    REGISTRATION_TAG,
    SYSTEM_TAG,
)
from chat_relay.exceptions import ProtocolError

# Decimal integer as clients write it: ASCII digits only, optional sign and
# surrounding whitespace
COLOR_CODE_PATTERN = re.compile(r"[ \t\n\v\f\r]*[+-]?[0-9]+[ \t\n\v\f\r]*")


def split_fields(raw: str) -> list[str]:
    """Split a raw frame on the delimiter, dropping empty fields."""
    return [field for field in raw.split(FIELD_DELIMITER) if field]


class RegistrationRequest(BaseModel):
    """
    Client frame ``REG|<nickname>|<colorCode>``.

    A color code that is not a 32-bit integer falls back to
    ``DEFAULT_COLOR_CODE`` instead of failing the registration.
    """

    nickname: Annotated[str, Field(min_length=1, frozen=True)]
    color_code: int = DEFAULT_COLOR_CODE

    @field_validator("color_code", mode="before")
    @classmethod
    def fallback_to_default_color(cls, value: Any) -> int:
        if isinstance(value, str) and COLOR_CODE_PATTERN.fullmatch(value):
            color_code = int(value)
        elif isinstance(value, int) and not isinstance(value, bool):
            color_code = value
        else:
            return DEFAULT_COLOR_CODE
        if not COLOR_CODE_MIN <= color_code <= COLOR_CODE_MAX:
            return DEFAULT_COLOR_CODE
        return color_code


class ChatRequest(BaseModel):
    """
    Client frame ``<tag>|<text>``.

    The tag is not interpreted; any first field makes a chat frame.
    """

    tag: str
    text: Annotated[str, Field(min_length=1)]


class OutboundFrame(BaseModel):
    """Base class of server frames; subclasses list their wire fields."""

    def wire_fields(self) -> tuple[str, ...]:
        raise NotImplementedError

    def encode(self) -> str:
        return FIELD_DELIMITER.join(self.wire_fields())


class ErrorFrame(OutboundFrame):
    text: str

    def wire_fields(self) -> tuple[str, ...]:
        return ERROR_TAG, self.text


class SystemFrame(OutboundFrame):
    text: str

    def wire_fields(self) -> tuple[str, ...]:
        return SYSTEM_TAG, self.text


class ChatFrame(OutboundFrame):
    """Relayed chat message ``<nickname>|<time>|<colorCode>|<text>``."""

    nickname: str
    time: str
    color_code: int
    text: str

    def wire_fields(self) -> tuple[str, ...]:
        return self.nickname, self.time, str(self.color_code), self.text


def parse_request(raw: str) -> RegistrationRequest | ChatRequest:
    """
    Parse an inbound frame into a request model.

    Frames are matched by shape, in order:
    1. three fields starting with the registration tag
    2. any two fields

    Whether a chat request is acceptable depends on the connection's
    registration state, which the caller checks.

    Args:
        raw: Text of the received frame.

    Returns:
        RegistrationRequest or ChatRequest.

    Raises:
        ProtocolError: If the frame has any other shape.
    """
    fields = split_fields(raw)

    if len(fields) == 3 and fields[0] == REGISTRATION_TAG:
        return RegistrationRequest(nickname=fields[1], color_code=fields[2])

    if len(fields) == 2:
        return ChatRequest(tag=fields[0], text=fields[1])

    raise ProtocolError()
