# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from starlette import status

from chat_relay.constants import WS_SHUTDOWN_REASON
from chat_relay.logging import logger
from chat_relay.managers.session_registry import session_registry
from chat_relay.managers.websocket_connection_manager import is_open
from chat_relay.routing import collect_subrouters
from chat_relay.settings import app_settings
from chat_relay.utils.metrics import app_info

__version__ = "1.0.0"


async def close_sessions() -> None:
    """
    Closes the connections of all registered sessions.

    Called on shutdown so clients see a "going away" close frame instead
    of a dropped socket. Failures are logged and do not stop the others.
    """
    sessions = session_registry.snapshot()
    if sessions:
        logger.info(f"Closing {len(sessions)} chat sessions")

    for nickname, session in sessions:
        if not is_open(session.connection):
            continue
        try:
            await session.connection.close(
                code=status.WS_1001_GOING_AWAY, reason=WS_SHUTDOWN_REASON
            )
        except Exception as ex:
            logger.warning(f"Error closing session {nickname}: {ex}")

    session_registry.clear()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application startup and shutdown handler.

    Startup publishes the app_info metric; shutdown closes every chat
    session that is still registered.
    """
    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=app_settings.ENVIRONMENT,
    ).set(1)
    logger.info("Server started")

    yield

    logger.info("Application shutdown initiated")
    await close_sessions()
    logger.info("Application shutdown complete")


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    The routers are collected by `chat_relay.routing.collect_subrouters()`:
    the chat WebSocket consumer plus the health, metrics and
    "WebSocket only" HTTP endpoints.
    """
    app = FastAPI(
        title="Chat relay",
        description="Real-time WebSocket chat relay",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(collect_subrouters())

    return app


app = application()  # Need for fastapi cli
