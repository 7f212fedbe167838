"""
Phone Agent - Main Application
==============================

FastAPI application entry point.

This module sets up:
- FastAPI application with CORS
- Route registration
- WebSocket endpoint
- Middleware (logging, error handling)
- Lifespan management (startup/shutdown)

The device, session manager and model factory are built once in
``create_app`` and stored on ``app.state``; routes receive them through
dependencies.

Usage:
    # Development
    uvicorn phone_agent.main:app --reload --port 3000

    # Or through the CLI
    phone-agent --port 3000
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from phone_agent import __version__
from phone_agent.api.deps import LLMFactory
from phone_agent.api.routes import devices_router, health_router, sessions_router, tasks_router
from phone_agent.api.websocket import WebSocketManager, websocket_endpoint
from phone_agent.config import Settings, get_settings
from phone_agent.device.adb_device import ADBDevice
from phone_agent.device.base import DeviceCapability
from phone_agent.llm import create_llm_client
from phone_agent.session import SessionManager
from phone_agent.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    device: Optional[DeviceCapability] = None,
    llm_factory: Optional[LLMFactory] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to environment).
        device: Device capability (defaults to ADB).
        llm_factory: Builds a model client per task (defaults to the configured provider).

    Returns:
        Configured FastAPI app.
    """
    settings = settings or get_settings()
    device = device or ADBDevice(
        device_id=settings.device.adb_device_serial or None,
        adb_path=settings.device.adb_path or None,
    )
    llm_factory = llm_factory or (lambda: create_llm_client(settings.llm))
    sessions = SessionManager()
    ws_manager = WebSocketManager(settings, device, sessions, llm_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan manager.

        Handles startup and shutdown events.
        """
        logger.info(
            "Starting Phone Agent",
            version=__version__,
            provider=settings.llm.llm_provider,
            model=settings.llm.get_active_model(),
        )

        yield

        logger.info("Shutting down Phone Agent")
        await ws_manager.shutdown()
        sessions.close()

    app = FastAPI(
        title="Phone Agent",
        description=(
            "Vision-language agent that operates an Android phone over ADB. "
            "Create a session for a device, then start tasks over the WebSocket."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.server.debug else None,
        redoc_url="/redoc" if settings.server.debug else None,
        openapi_url="/openapi.json" if settings.server.debug else None,
    )

    app.state.settings = settings
    app.state.device = device
    app.state.sessions = sessions
    app.state.llm_factory = llm_factory
    app.state.ws_manager = ws_manager

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests with timing."""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Request completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.exception(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.server.debug else "An unexpected error occurred",
            },
        )

    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(devices_router)
    app.include_router(tasks_router)

    @app.websocket("/ws")
    async def ws_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint for running tasks with live progress."""
        await websocket_endpoint(websocket, ws_manager)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        """Root endpoint with service information."""
        return {
            "service": "Phone Agent",
            "version": __version__,
            "docs": "/docs" if settings.server.debug else None,
            "health": "/health",
        }

    return app


def _build_default_app() -> FastAPI:
    settings = get_settings()
    setup_logging(level=settings.server.log_level, json_logs=not settings.server.debug)
    return create_app(settings)


app = _build_default_app()
