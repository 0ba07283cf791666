"""
Speak Practice Backend - Main Application Entry Point

This is the main FastAPI application that serves the English speaking
practice frontend. It provides:
- Conversation proxy endpoints in front of the hosted Gemini model
- Session history, progress and analytics endpoints
- Scenario catalog endpoints
- Health and status endpoints
"""

import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from speak_practice import __version__
from speak_practice.api import conversation_router, progress_router, scenarios_router
from speak_practice.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the effective configuration on startup and shutdown.
    """
    logger.info("=" * 60)
    logger.info("Speak Practice Backend Starting...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug Mode: {settings.debug}")
    logger.info("=" * 60)

    if settings.has_gemini_key:
        logger.info(f"Gemini model: {settings.gemini_model}")
    else:
        logger.warning(
            "GEMINI_API_KEY is not set. Conversation endpoints will fail until it is added."
        )

    logger.info(f"Progress store: {settings.storage_backend} ({settings.data_dir})")
    logger.info(f"Allowed origins: {', '.join(settings.allowed_origins_list)}")
    logger.info(f"Health check: http://{settings.host}:{settings.port}/api/health")

    yield  # Application runs here

    logger.info("Speak Practice Backend Stopped")


class RequestBodyTooLarge(HTTPException):
    def __init__(self):
        super().__init__(status_code=413, detail="Request body too large")


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_bytes``.

    Declared Content-Length is checked up front; chunked bodies are counted
    as the route reads them.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit() and int(length) > self.max_bytes:
            logger.warning(f"Rejected {scope['path']}: body of {length} bytes")
            await body_too_large_response()(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.warning(
                        f"Rejected {scope['path']}: streamed body over {self.max_bytes} bytes"
                    )
                    raise RequestBodyTooLarge()
            return message

        await self.app(scope, limited_receive, send)


def body_too_large_response() -> JSONResponse:
    return JSONResponse(status_code=413, content={"error": "Request body too large"})


async def body_too_large_handler(request: Request, exc: RequestBodyTooLarge):
    return body_too_large_response()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request body for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Speak Practice Backend",
        description="Conversation proxy and progress tracking for English speaking practice",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RequestBodyTooLarge, body_too_large_handler)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(conversation_router, tags=["conversation"])
    app.include_router(progress_router, tags=["progress"])
    app.include_router(scenarios_router, tags=["scenarios"])

    return app


# Create the app instance
app = create_app()


@app.get("/", tags=["root"])
async def root():
    """Root endpoint - returns basic API information."""
    return {
        "name": "Speak Practice Backend",
        "version": __version__,
        "model": settings.gemini_model,
        "endpoints": {
            "health": "/api/health",
            "initialize": "/api/initialize-conversation",
            "respond": "/api/generate-response",
            "feedback": "/api/generate-feedback",
            "sessions": "/api/sessions",
            "progress": "/api/progress",
            "scenarios": "/api/scenarios",
            "docs": "/docs" if settings.debug else "disabled",
        },
    }


def configure_logging():
    """Configure loguru logging based on settings."""
    # Remove default handler
    logger.remove()

    log_format = settings.log_format

    logger.add(
        sys.stderr,
        format=log_format,
        level=settings.log_level,
        colorize=True,
    )

    # Add file handler for production
    if settings.is_production:
        logger.add(
            "logs/speak-practice-{time:YYYY-MM-DD}.log",
            rotation="1 day",
            retention="7 days",
            level="INFO",
            format=log_format,
        )


def run_server():
    """Run the API server with uvicorn."""
    configure_logging()

    logger.info("")
    logger.info("=" * 60)
    logger.info("  Speak Practice Backend")
    logger.info("  Conversation practice and progress tracking")
    logger.info("=" * 60)
    logger.info(f"  Server: http://{settings.host}:{settings.port}")
    logger.info(f"  Environment: {settings.environment}")
    logger.info("=" * 60)

    uvicorn.run(
        "speak_practice.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server()
