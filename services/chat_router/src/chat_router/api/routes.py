"""API routes for the chat router service."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, WebSocket, status

from ..config import HealthPayload, Settings, get_settings
from ..hub import ChatHub

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_hub_from_app(app) -> ChatHub:  # type: ignore[no-untyped-def]
    hub = getattr(app.state, "hub", None)
    if hub is None:
        raise RuntimeError("ChatHub is not initialised")
    return hub


def get_hub(request: Request) -> ChatHub:
    """Fetch chat hub from HTTP request context."""

    return _get_hub_from_app(request.app)


def get_hub_for_ws(websocket: WebSocket) -> ChatHub:
    """Fetch chat hub for WebSocket connections."""

    return _get_hub_from_app(websocket.app)


def _authorize_reset(request: Request, settings: Settings) -> None:
    if not settings.reset_api_key:
        return
    auth_header = request.headers.get("authorization") or ""
    token = auth_header.split(" ")[-1] if auth_header.lower().startswith("bearer ") else None
    if token != settings.reset_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/health", response_model=HealthPayload, tags=["system"])
async def read_health(settings: Annotated[Settings, Depends(get_settings)]) -> HealthPayload:
    """Return service health information."""

    return HealthPayload(status="ok", api_version=settings.api_version)


@router.post("/reset", status_code=status.HTTP_204_NO_CONTENT, tags=["admin"])
async def reset_chat(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    """Clear history and groups, keep connected users."""

    _authorize_reset(request, settings)
    hub = get_hub(request)
    await hub.router.reset()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/v1/history", tags=["history"])
async def read_history(
    request: Request,
    viewer: Annotated[str, Query(min_length=1, description="Nickname whose view is returned.")],
) -> list[dict[str, Any]]:
    """Return the history visible to ``viewer``."""

    hub = get_hub(request)
    return [message.to_wire() for message in hub.router.filter_history_for(viewer)]


@router.websocket("/ws")
async def chat_ws(websocket: WebSocket) -> None:
    """Handle a chat WebSocket connection."""

    hub = get_hub_for_ws(websocket)
    await hub.handle_connection(websocket)
