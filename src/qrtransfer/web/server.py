from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qrtransfer.app import App
from qrtransfer.config import Config
from qrtransfer.errors import UserError
from qrtransfer.web.error_handlers import general_exception_handler, user_error_handler
from qrtransfer.web.openapi import set_custom_openapi
from qrtransfer.web.routers import listen_router, send_router, sessions_router


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        # Store app instance and config in app state
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="QR Transfer API",
        lifespan=lifespan,
    )

    # Receiver and sender pages may be served from another origin
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=False,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str | int]:
        return {"status": "healthy", **app_instance.get_stats()}

    app.include_router(sessions_router, prefix="/api")
    app.include_router(send_router, prefix="/api")
    app.include_router(listen_router, prefix="/api")

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
