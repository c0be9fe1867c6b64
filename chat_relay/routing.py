import os
import pkgutil
from importlib import import_module

from fastapi import APIRouter

from chat_relay.logging import logger

# Track which modules have been logged to avoid duplicate log messages
# when the application factory runs more than once in a process
_registered_http_modules: set[str] = set()
_registered_ws_modules: set[str] = set()


def collect_subrouters() -> APIRouter:
    """
    Collects and registers all HTTP and WebSocket routers for the application.

    Every module in `api/http` and `api/ws/consumers` must expose a module
    level `router`; each one is imported and included in the main router,
    which is returned as the entry point for the application.
    """
    main_router: APIRouter = APIRouter()

    # Get project dir
    app_dir = os.path.dirname(__file__)
    app_name = os.path.basename(app_dir)

    # Get HTTP routers
    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/http"]):
        api = import_module(f".{module}", package=f"{app_name}.api.http")
        main_router.include_router(api.router)

        if module not in _registered_http_modules:
            logger.info(f'Register "{module}" api')
            _registered_http_modules.add(module)

    # Get WS routers
    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/ws/consumers"]):
        ws_consumer = import_module(
            f".{module}", package=f"{app_name}.api.ws.consumers"
        )
        main_router.include_router(ws_consumer.router)

        if module not in _registered_ws_modules:
            logger.info(f'Register "{module}" websocket consumer')
            _registered_ws_modules.add(module)

    return main_router
