"""Utility modules for Make It Heavy.

This package provides utility functions and classes for:
- Configuration management
- Structured logging
- Exception handling
- Output persistence
"""

from .config import (
    AgentConfig,
    AppConfig,
    AppSettings,
    Environment,
    LLMConfig,
    LLMProviderName,
    LogFormat,
    LoggingConfig,
    OrchestratorConfig,
    OutputConfig,
    RetryConfig,
    SearchConfig,
    get_config,
    init_config,
    reset_config,
)
from .error_handlers import (
    create_error_response,
    register_error_handlers,
)
from .exceptions import (
    AgentExhaustionError,
    AgentTimeoutError,
    AggregationError,
    APIError,
    BadRequestError,
    ConfigurationError,
    ConflictError,
    DecompositionError,
    EmptyResponseError,
    GatewayError,
    HeavyError,
    InvalidConfigurationError,
    MissingConfigurationError,
    NotFoundError,
    ServiceUnavailableError,
    ToolAlreadyRegisteredError,
    ToolError,
    ToolExecutionError,
)
from .logging import (
    LoggerAdapter,
    clear_correlation_id,
    get_agent_logger,
    get_api_logger,
    get_correlation_id,
    get_logger,
    get_run_logger,
    set_correlation_id,
    setup_logging,
)
from .output import build_output_path, sanitize_name, save_output

__all__ = [
    # Config
    "AppConfig",
    "AppSettings",
    "LLMConfig",
    "LLMProviderName",
    "RetryConfig",
    "AgentConfig",
    "OrchestratorConfig",
    "SearchConfig",
    "OutputConfig",
    "LoggingConfig",
    "Environment",
    "LogFormat",
    "get_config",
    "init_config",
    "reset_config",
    # Logging
    "setup_logging",
    "get_logger",
    "LoggerAdapter",
    "get_agent_logger",
    "get_run_logger",
    "get_api_logger",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    # Exceptions
    "HeavyError",
    "ConfigurationError",
    "MissingConfigurationError",
    "InvalidConfigurationError",
    "GatewayError",
    "EmptyResponseError",
    "ToolError",
    "ToolAlreadyRegisteredError",
    "ToolExecutionError",
    "DecompositionError",
    "AgentExhaustionError",
    "AgentTimeoutError",
    "AggregationError",
    "APIError",
    "BadRequestError",
    "NotFoundError",
    "ConflictError",
    "ServiceUnavailableError",
    # Error Handlers
    "register_error_handlers",
    "create_error_response",
    # Output
    "save_output",
    "sanitize_name",
    "build_output_path",
]
