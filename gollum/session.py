"""
Connection session: the message loop for one client connection.

A session reads client frames one at a time and handles each prompt to
completion before reading the next one, so the response brackets of two
prompts never interleave on the same connection. Backend failures are
absorbed here and turned into a fixed user-facing message; only failures of
the client channel itself end the session.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from contextlib import aclosing
from typing import Protocol

from gollum.backend.exceptions import BackendError
from gollum.backend.models import GenerationFragment
from gollum.channel import ChannelClosedError, ChannelSendError, MessageChannel
from gollum.logging_utils import BridgeErrorHandler, ContextualLogger, operation_context
from gollum.protocol import (
    FrameDecodeError,
    PromptFrame,
    ResponseChunk,
    ResponseEnd,
    ResponseStart,
    parse_inbound_frame,
)

DEFAULT_ERROR_MESSAGE = "Sorry, I encountered an error processing your request."


class GenerationBackend(Protocol):
    """Anything that streams fragments for a prompt."""

    def generate(self, prompt: str) -> AsyncGenerator[GenerationFragment, None]:
        ...


class ConnectionSession:
    """Owns one client channel for its whole lifetime."""

    def __init__(
        self,
        channel: MessageChannel,
        backend: GenerationBackend,
        error_message: str = DEFAULT_ERROR_MESSAGE,
        session_id: str | None = None,
    ) -> None:
        self.channel = channel
        self.backend = backend
        self.error_message = error_message
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.prompts_handled = 0
        self._closed = False
        self.log = ContextualLogger({"session_id": self.session_id})

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def run(self) -> None:
        """Read and dispatch frames until the channel fails or closes."""
        self.log.info("Session started")
        try:
            while True:
                try:
                    raw = await self.channel.receive()
                except ChannelClosedError as e:
                    self.log.info("Client disconnected", code=e.code)
                    break

                try:
                    frame = parse_inbound_frame(raw)
                except FrameDecodeError as e:
                    self.log.warning(
                        "Malformed client frame, closing session",
                        error_message=str(e),
                    )
                    break

                if not isinstance(frame, PromptFrame):
                    self.log.debug("Ignoring frame", frame_type=frame.type)
                    continue

                try:
                    await self.handle_prompt(frame.content)
                except ChannelSendError as e:
                    self.log.warning(
                        "Client channel send failed, closing session",
                        error_message=str(e),
                    )
                    break
        finally:
            await self.close()
            self.log.info("Session ended", prompts_handled=self.prompts_handled)

    async def handle_prompt(self, prompt: str) -> None:
        """
        Stream one backend response to the client.

        Sends response_start, one response_chunk per non-final fragment and
        exactly one response_end. A backend failure adds a single chunk with
        the fixed error message before response_end.

        Raises:
            ChannelSendError: If the client channel stops accepting frames.
        """
        self.prompts_handled += 1
        context = {"session_id": self.session_id, "prompt_length": len(prompt)}

        async with operation_context("handle_prompt", context=context) as op_logger:
            await self.channel.send(ResponseStart())

            chunks_forwarded = 0
            try:
                async with aclosing(self.backend.generate(prompt)) as fragments:
                    async for fragment in fragments:
                        if fragment.done:
                            break
                        await self.channel.send(ResponseChunk(content=fragment.text))
                        chunks_forwarded += 1
            except BackendError as e:
                op_logger.error(
                    "Backend generation failed",
                    error_type=type(e).__name__,
                    error_category=BridgeErrorHandler.classify_error(e),
                    error_message=str(e),
                    status_code=e.status_code,
                    chunks_forwarded=chunks_forwarded,
                )
                await self.channel.send(ResponseChunk(content=self.error_message))

            await self.channel.send(ResponseEnd())
            op_logger.info("Response forwarded", chunks_forwarded=chunks_forwarded)

    async def close(self) -> None:
        """Close the channel once."""
        if self._closed:
            return
        self._closed = True
        await self.channel.close()
