"""
Incremental decoder for concatenated JSON object streams.

The generation backend writes a series of JSON objects back to back with no
length prefix. Objects can be split across transport chunks at any byte, so
the scanner keeps only the unfinished tail of the current object and hands
out each object as soon as its closing brace arrives.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator, Iterator

import structlog
from pydantic import ValidationError

from .exceptions import BackendStreamError, StreamDecodeError
from .models import DecoderStats, GenerationFragment

logger = structlog.get_logger(__name__)

_WHITESPACE = frozenset(b" \t\r\n")
# Closing byte expected for each opening byte
_CLOSERS = {ord("{"): ord("}"), ord("["): ord("]")}
_CLOSE = frozenset(_CLOSERS.values())
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_OBJECT_START = ord("{")

# Bytes of raw data attached to decode errors
MAX_ERROR_SAMPLE = 200


class ObjectScanner:
    """Find top-level JSON object boundaries in a byte stream."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._expected: list[int] = []
        self._in_string = False
        self._escape = False

    @property
    def pending(self) -> bool:
        """True while an object has been opened but not closed."""
        return bool(self._expected)

    def feed(self, data: bytes) -> Iterator[bytes]:
        """
        Scan ``data`` and yield every object completed by it.

        Raises:
            StreamDecodeError: On a byte outside an object that cannot start
                one, or a closing bracket that does not match its opener.
        """
        for byte in data:
            if not self._expected:
                if byte in _WHITESPACE:
                    continue
                if byte != _OBJECT_START:
                    raise StreamDecodeError(
                        f"Unexpected byte {bytes([byte])!r} between stream objects",
                        raw_data=bytes(data[:MAX_ERROR_SAMPLE]),
                    )
                self._buffer.append(byte)
                self._expected.append(_CLOSERS[byte])
                continue

            self._buffer.append(byte)

            if self._in_string:
                if self._escape:
                    self._escape = False
                elif byte == _BACKSLASH:
                    self._escape = True
                elif byte == _QUOTE:
                    self._in_string = False
            elif byte == _QUOTE:
                self._in_string = True
            elif byte in _CLOSERS:
                self._expected.append(_CLOSERS[byte])
            elif byte in _CLOSE:
                if byte != self._expected.pop():
                    sample = bytes(self._buffer[:MAX_ERROR_SAMPLE])
                    self._reset()
                    raise StreamDecodeError(
                        f"Mismatched {bytes([byte])!r} in stream object",
                        raw_data=sample,
                    )
                if not self._expected:
                    raw = bytes(self._buffer)
                    self._buffer.clear()
                    yield raw

    def _reset(self) -> None:
        self._buffer.clear()
        self._expected.clear()
        self._in_string = False
        self._escape = False

    def finish(self) -> None:
        """
        Check that the stream did not stop inside an object.

        Raises:
            StreamDecodeError: If a partial object is still buffered.
        """
        if self.pending:
            raise StreamDecodeError(
                "Stream ended inside an unterminated object",
                raw_data=bytes(self._buffer[:MAX_ERROR_SAMPLE]),
            )


def parse_fragment(raw: bytes) -> GenerationFragment:
    """Decode one complete object into a GenerationFragment."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StreamDecodeError(
            f"Invalid JSON in stream object: {e}",
            raw_data=raw[:MAX_ERROR_SAMPLE],
        ) from e
    except RecursionError as e:
        raise StreamDecodeError(
            "Stream object nested too deeply to decode",
            raw_data=raw[:MAX_ERROR_SAMPLE],
        ) from e

    if not isinstance(data, dict):
        raise StreamDecodeError(
            f"Expected a JSON object, got {type(data).__name__}",
            raw_data=raw[:MAX_ERROR_SAMPLE],
        )

    error = data.get("error")
    if isinstance(error, str):
        raise BackendStreamError(f"Backend reported an error: {error}")

    try:
        return GenerationFragment.model_validate(data)
    except ValidationError as e:
        raise StreamDecodeError(
            f"Invalid stream object: {e.error_count()} validation error(s)",
            raw_data=raw[:MAX_ERROR_SAMPLE],
        ) from e


class StreamDecoder:
    """
    Lazy, forward-only sequence of GenerationFragment over a byte source.

    Iteration stops after the first fragment with ``done=True``. A source
    that runs dry without one ends the sequence normally; check ``saw_done``
    to tell the two outcomes apart.
    """

    def __init__(self, source: AsyncIterable[bytes]):
        self._source = source
        self._scanner = ObjectScanner()
        self._iterator: AsyncGenerator[GenerationFragment, None] | None = None
        self.saw_done = False
        self.stats = DecoderStats()

    def __aiter__(self) -> AsyncIterator[GenerationFragment]:
        if self._iterator is not None:
            raise RuntimeError("StreamDecoder can only be iterated once")
        self._iterator = self._decode()
        return self._iterator

    async def aclose(self) -> None:
        """Stop decoding; safe to call whether or not iteration started."""
        if self._iterator is not None:
            await self._iterator.aclose()

    async def _decode(self) -> AsyncGenerator[GenerationFragment, None]:
        async for chunk in self._source:
            if not chunk:
                continue
            self.stats.bytes_received += len(chunk)

            for raw in self._scanner.feed(chunk):
                fragment = parse_fragment(raw)
                self.stats.objects_decoded += 1
                if fragment.done:
                    self.saw_done = True
                yield fragment
                if fragment.done:
                    return

        self._scanner.finish()
        logger.debug(
            "Stream source exhausted",
            objects_decoded=self.stats.objects_decoded,
            bytes_received=self.stats.bytes_received,
        )
