"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deployhub import __version__
from deployhub.api.middleware import RequestLoggingMiddleware
from deployhub.api.v1.router import router as v1_router
from deployhub.api.websocket import router as websocket_router
from deployhub.config import Settings, get_settings
from deployhub.core.console import DeploymentConsole
from deployhub.core.exceptions import DeployHubError
from deployhub.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info(
        "application.starting",
        version=__version__,
        environment=settings.app_env,
        strategy="provider" if settings.vercel_deploy_real else "simulated",
    )

    yield

    await app.state.console.shutdown()
    logger.info("application.shutdown")


def _error_body(code: str, message: str, **extra) -> dict:
    return {"error": {"code": code, "message": message, **extra}}


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Render DeployHubError subclasses with their own status code."""

    @app.exception_handler(DeployHubError)
    async def deployhub_error_handler(
        request: Request, exc: DeployHubError
    ) -> JSONResponse:
        logger.warning(
            "request.failed",
            error=exc.message,
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                type(exc).__name__.upper(), exc.message, details=exc.details
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "request.unhandled_exception",
            error=str(exc),
            path=request.url.path,
            exc_info=True,
        )
        if settings.is_development:
            body = _error_body("INTERNAL_ERROR", str(exc), type=type(exc).__name__)
        else:
            body = _error_body("INTERNAL_ERROR", "An unexpected error occurred")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body
        )


def create_app(
    settings: Settings | None = None,
    console: DeploymentConsole | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The console (storage, channel registry, running drivers) is created here
    and lives exactly as long as the application.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="DeployHub API",
        description="Deploy repositories and watch their build logs live",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.console = console or DeploymentConsole(settings)

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app, settings)

    # Include routers
    app.include_router(v1_router)
    app.include_router(websocket_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "deployhub.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.is_development,
    )
