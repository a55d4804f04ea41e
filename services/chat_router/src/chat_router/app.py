"""Factory for the chat router FastAPI application."""

from __future__ import annotations

import json
import logging
import logging.config
import time
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

from fastapi import FastAPI, Request, Response

from .api.routes import router
from .config import get_settings
from .hub import ChatHub
from .version import __version__

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("http")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    _setup_logging()
    hub = ChatHub(settings=get_settings())
    await hub.start()
    app.state.hub = hub
    try:
        yield
    finally:
        await hub.stop()


def create_app() -> FastAPI:
    """Build the app; the chat hub itself is created in the lifespan."""

    settings = get_settings()
    app = FastAPI(title="Chat Router", version=__version__, lifespan=_lifespan)
    app.include_router(router)

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):  # type: ignore[override]
        """Tag the exchange with `X-Trace-Id` and write one access log line."""

        trace_id = request.headers.get("x-trace-id") or uuid4().hex
        request.state.trace_id = trace_id
        start = time.perf_counter()
        status_code = 500
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Trace-Id"] = trace_id
            return response
        finally:
            access_logger.info(
                "method=%s path=%s status=%s elapsedMs=%s traceId=%s",
                request.method,
                request.url.path,
                status_code,
                int((time.perf_counter() - start) * 1000),
                trace_id,
            )

    @app.get("/config", tags=["system"])
    def read_config(request: Request) -> dict[str, str]:
        return {"apiVersion": settings.api_version, "traceId": request.state.trace_id}

    logger.info("Chat router initialised with API version %s", settings.api_version)
    return app


def _setup_logging() -> None:
    """Apply `observability/logging.json` from the working directory, if any."""

    config_path = Path.cwd() / "observability" / "logging.json"
    if not config_path.exists():
        return
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            logging.config.dictConfig(json.load(fh))
    except (OSError, ValueError):
        logger.exception("Failed to load logging config from %s", config_path)
