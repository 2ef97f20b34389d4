"""
Client channel frame protocol.

Inbound frames are a tagged variant: a prompt, or an unknown frame that the
session ignores. Outbound frames bracket every response:
response_start, zero or more response_chunk, response_end.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class FrameDecodeError(Exception):
    """A client frame could not be decoded."""

    def __init__(self, message: str, raw_data: str = ""):
        super().__init__(message)
        self.raw_data = raw_data


class PromptFrame(BaseModel):
    """A user prompt to forward to the backend."""
    model_config = ConfigDict(frozen=True)

    type: Literal["message"] = "message"
    content: str = ""


class UnknownFrame(BaseModel):
    """Any frame whose type this server does not handle."""
    model_config = ConfigDict(frozen=True)

    type: str | None = None


InboundFrame = PromptFrame | UnknownFrame


def parse_inbound_frame(raw: str | bytes) -> InboundFrame:
    """
    Decode one client frame.

    A missing or non-string ``content`` on a prompt becomes an empty string.

    Raises:
        FrameDecodeError: If the payload is not a JSON object.
    """
    try:
        data: Any = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FrameDecodeError(f"Invalid JSON frame: {e}", raw_data=str(raw)[:200]) from e
    except RecursionError as e:
        raise FrameDecodeError("Frame nested too deeply to decode", raw_data=str(raw)[:200]) from e

    if not isinstance(data, dict):
        raise FrameDecodeError(
            f"Frame must be a JSON object, got {type(data).__name__}",
            raw_data=str(raw)[:200],
        )

    frame_type = data.get("type")
    if frame_type == "message":
        content = data.get("content")
        return PromptFrame(content=content if isinstance(content, str) else "")

    return UnknownFrame(type=frame_type if isinstance(frame_type, str) else None)


class ResponseStart(BaseModel):
    type: Literal["response_start"] = "response_start"


class ResponseChunk(BaseModel):
    type: Literal["response_chunk"] = "response_chunk"
    content: str


class ResponseEnd(BaseModel):
    type: Literal["response_end"] = "response_end"


OutboundFrame = ResponseStart | ResponseChunk | ResponseEnd


def encode_outbound_frame(frame: OutboundFrame) -> str:
    """Serialize an outbound frame as a compact JSON object."""
    return frame.model_dump_json()
