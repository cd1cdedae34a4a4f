"""Make It Heavy - HTTP application entry point.

This module creates and configures the FastAPI application with all necessary
middleware, routers, and startup/shutdown handlers.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from heavy.api.routes import api_router, init_dependencies
from heavy.api.runs import OrchestratorFactory, RunManager, orchestrator_factory_from_config
from heavy.utils.config import AppConfig, Environment, LogFormat, get_config, init_config
from heavy.utils.error_handlers import register_error_handlers
from heavy.utils.logging import (
    clear_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)

logger = get_logger(__name__)


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def get_config_path() -> Path:
    """Get the path to the app.yaml configuration file."""
    return get_project_root() / "configs" / "app.yaml"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager.

    Creates the run manager on startup and cancels in-flight runs on shutdown.
    """
    config: AppConfig = app.state.config
    factory: OrchestratorFactory = (
        app.state.orchestrator_factory or orchestrator_factory_from_config(config)
    )

    logger.info(
        "Starting Make It Heavy",
        app_name=config.app.name,
        version=config.app.version,
        environment=config.app.env.value,
        provider=config.llm.provider.value,
        model=config.llm.resolved_model,
    )
    if not config.llm.api_key:
        logger.warning("No LLM API key configured, runs will be rejected until one is set")

    run_manager = RunManager(factory)
    app.state.run_manager = run_manager
    init_dependencies(run_manager, config)

    yield

    logger.info("Shutting down Make It Heavy")
    await run_manager.shutdown()
    init_dependencies(None)
    app.state.run_manager = None
    logger.info("Make It Heavy shutdown complete")


def create_app(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
    orchestrator_factory: OrchestratorFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config_path: Optional path to YAML configuration file.
        env_file: Optional path to .env file.
        orchestrator_factory: Optional factory for per-run orchestrators.
            Defaults to one wired from the loaded configuration.

    Returns:
        Configured FastAPI application instance.
    """
    # Load configuration
    if config_path is None:
        default_config_path = get_config_path()
        if default_config_path.exists():
            config_path = default_config_path

    config = init_config(yaml_path=config_path, env_file=env_file)

    # Setup logging
    setup_logging(
        level=config.logging.level,
        json_format=config.logging.format == LogFormat.JSON,
    )

    # Create FastAPI app
    app = FastAPI(
        title=config.app.name,
        description="Multi-agent research orchestrator - fans one query out to parallel agents and synthesizes their findings",
        version=config.app.version,
        docs_url="/docs" if config.app.debug else None,
        redoc_url="/redoc" if config.app.debug else None,
        openapi_url="/openapi.json" if config.app.debug else None,
        lifespan=lifespan,
    )

    # Store config in app state
    app.state.config = config
    app.state.orchestrator_factory = orchestrator_factory
    app.state.run_manager = None

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.app.env == Environment.DEVELOPMENT else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next: Any) -> Any:
        """Add request ID to each request for tracing."""
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id
        set_correlation_id(request_id)

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        clear_correlation_id()

        return response

    # Add logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        """Log incoming requests and responses."""
        logger.info(
            "Request received",
            method=request.method,
            path=str(request.url.path),
            client=request.client.host if request.client else "unknown",
        )

        response = await call_next(request)

        logger.info(
            "Response sent",
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
        )

        return response

    # Register error handlers
    register_error_handlers(app)

    # Include API routers
    app.include_router(api_router)

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with basic information."""
        return {
            "name": config.app.name,
            "version": config.app.version,
            "status": "running",
            "docs": "/docs" if config.app.debug else "disabled",
        }

    # Readiness probe
    @app.get("/ready", tags=["Health"])
    async def readiness() -> JSONResponse:
        """Readiness probe; needs a started run manager and an API key."""
        if app.state.run_manager is None:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "message": "Service not initialized"},
            )
        if not config.llm.api_key and app.state.orchestrator_factory is None:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "message": "No LLM API key configured"},
            )

        return JSONResponse(status_code=200, content={"status": "ready"})

    # Liveness probe
    @app.get("/live", tags=["Health"])
    async def liveness() -> JSONResponse:
        """Liveness probe."""
        return JSONResponse(status_code=200, content={"status": "alive"})

    return app


# Create the application instance
app = create_app()


def run_dev_server() -> None:
    """Run the development server with hot-reload."""
    import uvicorn

    config = get_config()

    uvicorn.run(
        "heavy.main:app",
        host=config.app.host,
        port=config.app.port,
        reload=True,
        reload_dirs=["heavy"],
        log_level="info",
    )


def run_prod_server() -> None:
    """Run the production server."""
    import uvicorn

    config = get_config()

    uvicorn.run(
        "heavy.main:app",
        host=config.app.host,
        port=config.app.port,
        reload=False,
        workers=4,
        log_level="warning",
        access_log=False,
    )


if __name__ == "__main__":
    run_dev_server()
