"""API routes.

All endpoints live under ``/api/v1``:

    GET  /health          service status
    POST /runs            start a run in the background
    GET  /runs            list tracked runs
    GET  /runs/{run_id}   run status, progress and answer
    POST /runs/sync       run a query and wait for the answer
"""

from fastapi import APIRouter, Depends, status

from heavy.utils.config import AppConfig, get_config
from heavy.utils.exceptions import ConfigurationError, ServiceUnavailableError
from heavy.utils.logging import get_api_logger

from .runs import RunManager, RunRecord, RunState
from .schemas import (
    APIResponse,
    CreateRunRequest,
    HealthResponse,
    RunResultResponse,
    RunStatusResponse,
)

logger = get_api_logger()

# Set by the application lifespan
_run_manager: RunManager | None = None
_config: AppConfig | None = None


def init_dependencies(run_manager: RunManager | None, config: AppConfig | None = None) -> None:
    """Install (or clear, with None) the objects the routes depend on."""
    global _run_manager, _config
    _run_manager = run_manager
    _config = config


def get_run_manager() -> RunManager:
    if _run_manager is None:
        raise ServiceUnavailableError("runs", "Run manager is not initialized")
    return _run_manager


def get_app_config() -> AppConfig:
    return _config or get_config()


def _start_run(manager: RunManager, request: CreateRunRequest) -> RunRecord:
    try:
        return manager.start(request.query, request.num_agents)
    except ConfigurationError as e:
        raise ServiceUnavailableError("llm", e.message) from e


api_router = APIRouter(prefix="/api/v1")
run_router = APIRouter(prefix="/runs", tags=["Runs"])


@api_router.get("/health", tags=["Health"], response_model=APIResponse)
async def health(
    manager: RunManager = Depends(get_run_manager),
    config: AppConfig = Depends(get_app_config),
) -> APIResponse:
    """Service status and run counters."""
    data = HealthResponse(
        status="healthy",
        provider=config.llm.provider.value,
        model=config.llm.resolved_model,
        parallel_agents=config.orchestrator.parallel_agents,
        active_runs=manager.active_count,
        total_runs=len(manager),
    )
    return APIResponse(success=True, data=data.model_dump(mode="json"))


@run_router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=APIResponse)
async def create_run(
    request: CreateRunRequest,
    manager: RunManager = Depends(get_run_manager),
) -> APIResponse:
    """Start a run; poll ``GET /runs/{run_id}`` for progress."""
    record = _start_run(manager, request)
    return APIResponse(
        success=True,
        data=RunStatusResponse.from_record(record).model_dump(mode="json"),
    )


@run_router.get("", response_model=APIResponse)
async def list_runs(manager: RunManager = Depends(get_run_manager)) -> APIResponse:
    """List tracked runs, newest first."""
    runs = [RunStatusResponse.from_record(r).model_dump(mode="json") for r in manager.list_runs()]
    return APIResponse(success=True, data=runs, metadata={"total": len(runs)})


@run_router.post("/sync", response_model=APIResponse)
async def run_sync(
    request: CreateRunRequest,
    manager: RunManager = Depends(get_run_manager),
) -> APIResponse:
    """Run a query and respond once the final answer is ready."""
    try:
        record = await manager.run_to_completion(request.query, request.num_agents)
    except ConfigurationError as e:
        raise ServiceUnavailableError("llm", e.message) from e

    return APIResponse(
        success=record.state == RunState.COMPLETED,
        data=RunResultResponse.from_record(record).model_dump(mode="json"),
        error=record.error,
    )


@run_router.get("/{run_id}", response_model=APIResponse)
async def get_run(run_id: str, manager: RunManager = Depends(get_run_manager)) -> APIResponse:
    """Status, per-agent progress and (when finished) the answer of a run."""
    record = manager.get(run_id)
    return APIResponse(
        success=True,
        data=RunResultResponse.from_record(record).model_dump(mode="json"),
    )


api_router.include_router(run_router)
