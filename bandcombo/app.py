from __future__ import annotations

import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, cast

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
import slowapi.extension as slowapi_extension
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from . import __version__
from .api import router as api_router
from .config import AppConfig
from .state import AppState
from .utils import configure_logging

logger = logging.getLogger(__name__)

# Work around slowapi using deprecated asyncio.iscoroutinefunction on Python 3.14+.
slowapi_asyncio = cast(Any, getattr(slowapi_extension, "asyncio", None))
if slowapi_asyncio is not None:
    slowapi_asyncio.iscoroutinefunction = inspect.iscoroutinefunction


def create_app(config: AppConfig, config_path: str | None = None) -> FastAPI:
    configure_logging(config.logging.level, config.logging.file)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_state: AppState = app.state.app_state
        logger.info(
            "bandcombo API ready (config=%s, %d device profiles, auth=%s)",
            app_state.config_path or "<defaults>",
            len(app_state.profiles),
            "on" if config.server.auth_token else "off",
        )
        try:
            yield
        finally:
            logger.info("bandcombo API shutting down")

    app = FastAPI(title="bandcombo", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        # Encode metadata travels in X-* headers
        expose_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=["200/minute"])
    app.state.limiter = limiter
    rate_limit_handler = cast(Callable[[Request, Exception], Response], _rate_limit_exceeded_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    app.state.app_state = AppState.from_config(config, config_path)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "bandcombo API", "docs": "/docs"}

    @app.get("/health")
    @limiter.limit("30/minute")
    def health(request: Request) -> dict[str, str]:
        return {"status": "ok"}

    return app
