"""
Models for backend generation requests and streamed fragments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator


class GenerationRequest(BaseModel):
    """Body of one streaming generation call."""
    model: str
    prompt: str
    stream: bool = True


class GenerationFragment(BaseModel):
    """
    One decoded unit of the backend stream.

    The backend names the text field ``response``; unknown fields such as
    timings or context vectors are ignored. A null ``response`` is empty text.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    text: StrictStr = Field(default="", alias="response")
    done: StrictBool = False

    @field_validator("text", mode="before")
    @classmethod
    def null_text_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value


@dataclass
class DecoderStats:
    """Counters for one decoded stream."""
    objects_decoded: int = 0
    bytes_received: int = 0
