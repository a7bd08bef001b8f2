"""
HTTP API: OpenAI-compatible routes served by FastAPI.
"""
import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .client import ChatStream, VertexGateway
from .config import SERVICE_NAME, VERSION, Settings, load_settings
from .errors import AuthenticationError, GatewayError, InternalError, InvalidRequestError
from .log import print_banner, setup_logging

logger = logging.getLogger(__name__)

DESCRIPTION = "OpenAI-compatible gateway to Google Vertex AI"

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /health",
    "GET /v1/health",
    "GET /v1/models",
    "GET /v1/models/{model_id}",
    "POST /v1/chat/completions",
    "POST /v1/completions",
]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestError(f"Invalid JSON body: {e}") from e


async def _sse_frames(request: Request, stream: ChatStream) -> AsyncIterator[str]:
    """Forward frames until the stream ends or the client goes away."""
    frames = stream.frames
    try:
        async for frame in frames:
            if await request.is_disconnected():
                logger.info("Client disconnected, stopping stream (model=%s)", stream.model)
                break
            yield frame
    finally:
        aclose = getattr(frames, "aclose", None)
        if callable(aclose):
            await aclose()


def create_app(settings: Optional[Settings] = None, gateway: Optional[VertexGateway] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings (Settings, optional): Defaults to `load_settings()`.
        gateway (VertexGateway, optional): Defaults to a gateway for the
            settings. Vertex AI credentials are resolved at startup.

    Returns:
        FastAPI: The configured app.
    """
    settings = settings or load_settings()
    gateway = gateway or VertexGateway(settings)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):  # noqa: ARG001
        if not gateway.auth.initialized:
            try:
                gateway.auth.initialize()
            except AuthenticationError as e:
                # Keep serving: /health reports the state and chat calls fail with 401
                logger.error("Vertex AI authentication unavailable: %s", e.message)
        yield

    app = FastAPI(title=SERVICE_NAME, version=VERSION, description=DESCRIPTION, lifespan=_lifespan)
    app.state.gateway = gateway
    app.state.settings = settings

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.allowed_origins),
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
            allow_credentials=settings.allowed_origins != ("*",),
            max_age=86400,
        )

    @app.middleware("http")
    async def _request_logger(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s %d (client=%s, user_agent=%s, duration_ms=%.1f)",
            request.method, request.url.path, response.status_code,
            request.client.host if request.client else "unknown",
            request.headers.get("user-agent", "-"),
            (time.perf_counter() - start) * 1000.0,
        )
        return response

    @app.exception_handler(GatewayError)
    async def _gateway_error(request: Request, exc: GatewayError):
        logger.warning("%s %s failed (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": {
                        "message": f"Route {request.method} {request.url.path} not found",
                        "type": "not_found_error",
                        "available_endpoints": AVAILABLE_ENDPOINTS,
                    }
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"message": str(exc.detail), "type": "http_error", "code": exc.status_code}},
        )

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=InternalError(str(exc) or "Internal Server Error").to_dict())

    @app.get("/")
    async def root():
        return {
            "name": SERVICE_NAME,
            "version": VERSION,
            "description": DESCRIPTION,
            "status": "operational",
            "timestamp": _timestamp(),
            "vertex_ai": gateway.health(),
            "endpoints": {
                "chat": "/v1/chat/completions",
                "completions": "/v1/completions",
                "models": "/v1/models",
                "health": "/health",
            },
        }

    @app.get("/health")
    @app.get("/v1/health")
    async def health():
        vertex = gateway.health()
        return {
            "status": "healthy",
            "timestamp": _timestamp(),
            "service": SERVICE_NAME,
            "version": VERSION,
            "project_id": vertex["project_id"],
            "location": vertex["location"],
            "vertex_ai": vertex,
        }

    @app.get("/v1/models")
    async def models():
        data = gateway.list_models()
        logger.info("Models endpoint accessed (count=%d)", len(data))
        return {"object": "list", "data": data}

    @app.get("/v1/models/{model_id:path}")
    async def model_detail(model_id: str):
        return gateway.describe_model(model_id)

    async def _complete(request: Request, body: Any):
        result = await gateway.chat_completion(body)
        if isinstance(result, ChatStream):
            return StreamingResponse(
                _sse_frames(request, result),
                media_type="text/event-stream",
                headers={
                    "Cache-Control": "no-cache",
                    "Connection": "keep-alive",
                    "X-Accel-Buffering": "no",
                },
            )
        return result

    @app.post("/v1/chat/completions")
    async def chat_completions(request: Request):
        return await _complete(request, await _read_json(request))

    @app.post("/v1/completions")
    async def completions(request: Request):
        body = await _read_json(request)
        if not isinstance(body, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        chat_body = {key: value for key, value in body.items() if key != "prompt"}
        chat_body["messages"] = [{"role": "user", "content": body.get("prompt")}]
        return await _complete(request, chat_body)

    return app


def main() -> None:
    """Run the gateway with uvicorn."""
    settings = load_settings()
    setup_logging(settings)
    app = create_app(settings)
    print_banner(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
