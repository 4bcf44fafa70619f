"""
CDP envelope codec.

Every message exchanged with the browser is a JSON object. Three shapes exist:

- command:  {"id": int, "method": str, "params": {...}, "sessionId"?: str}
- response: {"id": int, "result": {...} | "error": {...}, "sessionId"?: str}
- event:    {"method": str, "params": {...}, "sessionId"?: str}

decode_message() is the only place inbound text is turned into Python
objects; anything it cannot validate raises DecodeError.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chrome_devtools.cdp.errors import DecodeError, ProtocolError


class ErrorPayload(BaseModel):
    """Error body of a failed response."""

    code: int = -1
    message: str = "Unknown error"
    data: Optional[Any] = None

    def to_exception(self, method: Optional[str] = None) -> ProtocolError:
        return ProtocolError(self.code, self.message, self.data, method=method)


class CommandEnvelope(BaseModel):
    """Outgoing command."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., ge=1)
    method: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = Field(None, alias="sessionId")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ResponseEnvelope(BaseModel):
    """Reply to a command, matched by id."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    result: dict[str, Any] = Field(default_factory=dict)
    error: Optional[ErrorPayload] = None
    session_id: Optional[str] = Field(None, alias="sessionId")

    @property
    def is_error(self) -> bool:
        return self.error is not None


class EventEnvelope(BaseModel):
    """Unsolicited notification pushed by the browser."""

    model_config = ConfigDict(populate_by_name=True)

    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = Field(None, alias="sessionId")


InboundEnvelope = Union[ResponseEnvelope, EventEnvelope]


def encode_command(
    call_id: int,
    method: str,
    params: Optional[dict[str, Any]] = None,
    session_id: Optional[str] = None,
) -> str:
    """Serialize a command envelope to JSON text.

    ``sessionId`` is left out for the root (browser-level) session.
    """
    envelope = CommandEnvelope(
        id=call_id,
        method=method,
        params=params or {},
        session_id=session_id or None,
    )
    return envelope.to_json()


def decode_message(raw: Union[str, bytes]) -> InboundEnvelope:
    """Decode one inbound message.

    Args:
        raw: JSON text (or UTF-8 bytes) received from the transport.

    Returns:
        A ResponseEnvelope if the message carries an id, otherwise an
        EventEnvelope.

    Raises:
        DecodeError: If the text is not a JSON object of a known shape.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Invalid JSON: {e}", raw) from e

    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}", raw)

    try:
        if "id" in data:
            return ResponseEnvelope.model_validate(data)
        if "method" in data:
            return EventEnvelope.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Malformed envelope: {e.error_count()} validation error(s)", raw) from e

    raise DecodeError("Message has neither 'id' nor 'method'", raw)
