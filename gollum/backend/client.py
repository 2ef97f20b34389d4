"""
Streaming HTTP client for the text-generation backend.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import aclosing
from typing import Any

import httpx
import structlog

from .decoder import StreamDecoder
from .exceptions import BackendConnectionError, BackendError, BackendStatusError
from .models import GenerationFragment, GenerationRequest

logger = structlog.get_logger(__name__)

HTTP_OK = 200
MAX_ERROR_BODY = 500


class BackendClient:
    """HTTP client issuing one streaming generation request per prompt."""

    def __init__(
        self,
        config: dict[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        required_keys = ["url", "model", "fragment_delay", "timeout"]
        for key in required_keys:
            if key not in config:
                raise ValueError(
                    f"Required backend configuration parameter '{key}' not found"
                )

        self.url: str = config["url"]
        self.model: str = config["model"]
        self.fragment_delay: float = config["fragment_delay"]
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            timeout=httpx.Timeout(config["timeout"]),
            transport=transport,
        )

    async def generate(self, prompt: str) -> AsyncGenerator[GenerationFragment, None]:
        """
        Stream fragments for ``prompt`` in backend order.

        The final fragment (``done=True``) is yielded too; callers decide
        what to do with its text. The response body is released on every
        exit path, including the caller closing this iterator early.

        Raises:
            BackendConnectionError: Backend unreachable or transport failure.
            BackendStatusError: Backend answered with a non-200 status.
            StreamDecodeError: A streamed object could not be decoded.
            BackendStreamError: The backend reported an error in the stream.
        """
        request = GenerationRequest(model=self.model, prompt=prompt)

        try:
            async with self.client.stream(
                "POST", self.url, json=request.model_dump()
            ) as response:
                if response.status_code != HTTP_OK:
                    body = await response.aread()
                    raise BackendStatusError(
                        f"Backend returned status {response.status_code}",
                        status_code=response.status_code,
                        body=body[:MAX_ERROR_BODY].decode("utf-8", errors="replace"),
                    )

                async with aclosing(StreamDecoder(response.aiter_bytes())) as decoder:
                    async for fragment in decoder:
                        yield fragment
                        if fragment.done:
                            break
                        if self.fragment_delay > 0:
                            await asyncio.sleep(self.fragment_delay)

                if not decoder.saw_done:
                    logger.warning(
                        "Backend stream ended without a done marker",
                        url=self.url,
                        model=self.model,
                        objects_decoded=decoder.stats.objects_decoded,
                    )

        except BackendError as e:
            e.url = self.url
            e.model = self.model
            raise
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise BackendConnectionError(
                f"Backend request failed: {e!s}",
                url=self.url,
                model=self.model,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> BackendClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
