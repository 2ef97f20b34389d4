"""
Backend integration for streaming text generation.

This package provides:
- A streaming HTTP client issuing one request per prompt
- An incremental decoder for concatenated JSON object streams
- Typed request and fragment models
- A backend error hierarchy
"""

from __future__ import annotations

from .client import BackendClient
from .decoder import ObjectScanner, StreamDecoder
from .exceptions import (
    BackendConnectionError,
    BackendError,
    BackendStatusError,
    BackendStreamError,
    StreamDecodeError,
)
from .models import DecoderStats, GenerationFragment, GenerationRequest

__all__ = [
    "BackendClient",
    "BackendConnectionError",
    "BackendError",
    "BackendStatusError",
    "BackendStreamError",
    "DecoderStats",
    "GenerationFragment",
    "GenerationRequest",
    "ObjectScanner",
    "StreamDecodeError",
    "StreamDecoder",
]
