"""API module.

Provides FastAPI routers, schemas, and the in-memory run manager.
"""

from .routes import api_router, init_dependencies, run_router
from .runs import RunManager, RunRecord, RunState, orchestrator_factory_from_config
from .schemas import (
    AgentResultSchema,
    APIResponse,
    CreateRunRequest,
    ErrorResponse,
    HealthResponse,
    RunResultResponse,
    RunStatusResponse,
)

__all__ = [
    # Routers
    "api_router",
    "run_router",
    # Functions
    "init_dependencies",
    "orchestrator_factory_from_config",
    # Runs
    "RunManager",
    "RunRecord",
    "RunState",
    # Schemas - Common
    "APIResponse",
    "ErrorResponse",
    "HealthResponse",
    # Schemas - Run
    "CreateRunRequest",
    "AgentResultSchema",
    "RunStatusResponse",
    "RunResultResponse",
]
