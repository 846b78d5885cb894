"""FastAPI application entry point.

Voxmenu - IVR call-handling endpoint with a WebSocket media-stream transport.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from voxmenu.api.routes import calls, health, metrics
from voxmenu.api.websocket.media_stream import media_stream_endpoint
from voxmenu.config import Settings, get_settings
from voxmenu.core.dispatcher import CallDispatcher
from voxmenu.core.session import CallServices
from voxmenu.core.status import CallBoard, StatusPublisher
from voxmenu.logging_config import get_logger, setup_logging
from voxmenu.services.info import InfoReporter
from voxmenu.services.llm import GroqService
from voxmenu.services.storage import AudioStorage
from voxmenu.services.tts import create_synthesizer

logger = get_logger(__name__)


def build_services(settings: Settings, publisher: StatusPublisher) -> CallServices:
    """Wire the shared collaborators every call uses."""
    groq = GroqService(settings)
    return CallServices(
        storage=AudioStorage(settings),
        synthesizer=create_synthesizer(settings),
        transcriber=groq,
        assistant=groq,
        info=InfoReporter(settings),
        publisher=publisher,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup:
    - Initialize logging

    Shutdown:
    - Signal active calls to end and wait for their cleanup
    - Close HTTP clients
    """
    settings: Settings = app.state.settings

    setup_logging(
        level=settings.log_level,
        enable_file=settings.is_production,
    )
    logger.info(
        f"Voxmenu starting ({settings.environment}), "
        f"max {settings.max_concurrent_calls} calls, recording "
        f"{'on' if settings.recording_enabled else 'off'}"
    )

    yield

    await app.state.dispatcher.shutdown()

    services: CallServices = app.state.services
    for client in (services.info, services.assistant, services.synthesizer):
        close = getattr(client, "close", None)
        if close is None:
            continue
        try:
            await close()
        except Exception as e:
            logger.warning(f"Error closing {type(client).__name__}: {e}")


def create_app(
    settings: Settings | None = None,
    services: CallServices | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Voxmenu API",
        description="IVR call handling: menus, DTMF, recording and assistant",
        version="0.1.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    call_board = CallBoard()
    if services is None:
        services = build_services(settings, StatusPublisher([call_board]))
    else:
        services.publisher.add_sink(call_board)

    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings
    app.state.call_board = call_board
    app.state.services = services
    app.state.storage = services.storage
    app.state.dispatcher = CallDispatcher(services, settings)

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # Metrics endpoint for Prometheus scraping
    app.include_router(metrics.router, tags=["Observability"])

    # Call board, menu and recordings
    app.include_router(calls.router, prefix="/api", tags=["Calls"])

    # WebSocket endpoint for call media streams
    @app.websocket("/ws/call/{call_id}")
    async def call_ws(websocket: WebSocket, call_id: str):
        """WebSocket endpoint for one call's media stream."""
        await media_stream_endpoint(websocket, call_id, app.state.dispatcher)

    return app


def run() -> None:
    """Run the server (console entry point)."""
    settings = get_settings()
    uvicorn.run(
        "voxmenu.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
