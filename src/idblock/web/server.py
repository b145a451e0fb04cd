from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from idblock.app import App
from idblock.config import Config
from idblock.errors import AllocationError, UserError
from idblock.web.error_handlers import allocation_error_handler, general_exception_handler, user_error_handler
from idblock.web.openapi import set_custom_openapi
from idblock.web.routers import counters_router


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(title="idblock API", lifespan=lifespan, debug=config.debug)

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(counters_router, prefix="/api/v1")

    # UserError is matched first for errors that are both
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(AllocationError, allocation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
