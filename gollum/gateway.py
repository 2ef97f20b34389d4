"""
Transport gateway: accepts WebSocket connections and hands each one to a
new ConnectionSession.

The gateway also serves the static chat page and a health endpoint.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
from fastapi import FastAPI, WebSocket, status
from fastapi.responses import HTMLResponse
from fastapi.websockets import WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field

from gollum.channel import WebSocketChannel
from gollum.session import DEFAULT_ERROR_MESSAGE, ConnectionSession, GenerationBackend

logger = structlog.get_logger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
ANY_ORIGIN = "*"


def _normalize_origin(origin: str) -> str:
    return origin.strip().rstrip("/").lower()


class OriginPolicy:
    """Decides which browser origins may open a WebSocket."""

    def __init__(self, allowed_origins: list[str]) -> None:
        if not allowed_origins:
            raise ValueError("allowed_origins must not be empty")
        self.allow_all = ANY_ORIGIN in allowed_origins
        self.allowed_origins = frozenset(
            _normalize_origin(origin)
            for origin in allowed_origins
            if origin != ANY_ORIGIN
        )

    def is_allowed(self, origin: str | None) -> bool:
        """Requests without an Origin header come from non-browser clients."""
        if self.allow_all or origin is None:
            return True
        return _normalize_origin(origin) in self.allowed_origins


class GatewayConfig(BaseModel):
    """Construction parameters for the gateway."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    origin_policy: OriginPolicy = Field(
        default_factory=lambda: OriginPolicy([ANY_ORIGIN])
    )
    websocket_path: str = "/ws"
    error_message: str = DEFAULT_ERROR_MESSAGE
    page_path: Path = STATIC_DIR / "index.html"


class TransportGateway:
    """Builds the FastAPI application and owns the accept path."""

    def __init__(self, config: GatewayConfig, backend: GenerationBackend) -> None:
        self.config = config
        self.backend = backend
        self.active_sessions = 0
        self._page = config.page_path.read_text(encoding="utf-8")
        self.app = self._build_app()

    def _build_app(self) -> FastAPI:
        app = FastAPI(title="Gollum Bridge")
        app.add_api_route(
            "/", self.serve_page, methods=["GET"], response_class=HTMLResponse
        )
        app.add_api_route("/health", self.health, methods=["GET"])
        app.add_api_websocket_route(self.config.websocket_path, self.handle_websocket)
        return app

    async def serve_page(self) -> HTMLResponse:
        """Serve the chat page."""
        return HTMLResponse(self._page)

    async def health(self) -> dict[str, Any]:
        """Report liveness and the number of open sessions."""
        return {"status": "ok", "active_sessions": self.active_sessions}

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handshake, then run one session until it ends."""
        origin = websocket.headers.get("origin")
        peer = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"

        if not self.config.origin_policy.is_allowed(origin):
            logger.warning("Rejected WebSocket handshake", origin=origin, peer=peer)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        try:
            await websocket.accept()
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.error("WebSocket upgrade error", peer=peer, error_message=str(e))
            return

        session = ConnectionSession(
            WebSocketChannel(websocket),
            self.backend,
            error_message=self.config.error_message,
        )
        logger.info("Accepted WebSocket connection", peer=peer, session_id=session.session_id)

        self.active_sessions += 1
        try:
            await session.run()
        finally:
            self.active_sessions -= 1
