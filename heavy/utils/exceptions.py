"""Custom exception classes for Make It Heavy.

This module provides a unified exception hierarchy for the application.
Core components raise these internally; most of them are recovered before
they reach the caller of the orchestrator.
"""

from typing import Any


class HeavyError(Exception):
    """Base exception for all Make It Heavy errors.

    All custom exceptions in this system should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
            cause: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(HeavyError):
    """Raised when there's a configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Raised when a required configuration is missing."""

    def __init__(self, config_key: str, message: str | None = None):
        self.config_key = config_key
        msg = message or f"Missing required configuration: {config_key}"
        super().__init__(msg, details={"config_key": config_key})


class InvalidConfigurationError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(self, config_key: str, value: Any, message: str | None = None):
        self.config_key = config_key
        self.value = value
        msg = message or f"Invalid configuration value for {config_key}: {value}"
        super().__init__(msg, details={"config_key": config_key, "value": str(value)})


# ============================================================================
# Gateway Errors
# ============================================================================


class GatewayError(HeavyError):
    """Raised when the LLM gateway gives up after exhausting its retries."""

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        provider: str | None = None,
        cause: Exception | None = None,
    ):
        details: dict[str, Any] = {"attempts": attempts}
        if provider:
            details["provider"] = provider
        super().__init__(message, details=details, cause=cause)
        self.attempts = attempts
        self.provider = provider


class EmptyResponseError(HeavyError):
    """Raised when the provider returns a response with zero choices."""

    def __init__(self, model: str | None = None):
        details = {"model": model} if model else None
        super().__init__("LLM response contained no choices", details=details)
        self.model = model


# ============================================================================
# Tool Errors
# ============================================================================


class ToolError(HeavyError):
    """Base class for tool registry errors."""

    pass


class ToolAlreadyRegisteredError(ToolError):
    """Raised when a tool name is registered twice."""

    def __init__(self, tool_name: str):
        super().__init__(
            f"Tool already registered: {tool_name}",
            details={"tool_name": tool_name},
        )
        self.tool_name = tool_name


class ToolExecutionError(ToolError):
    """Raised inside dispatch; always converted into an error outcome."""

    def __init__(
        self,
        tool_name: str,
        message: str,
        cause: Exception | None = None,
    ):
        super().__init__(message, details={"tool_name": tool_name}, cause=cause)
        self.tool_name = tool_name


# ============================================================================
# Orchestration Errors
# ============================================================================


class DecompositionError(HeavyError):
    """Raised when the decomposition response cannot be used."""

    def __init__(self, message: str, raw_output: str | None = None):
        details = {"raw_output": raw_output[:500]} if raw_output else None
        super().__init__(message, details=details)
        self.raw_output = raw_output


class AgentExhaustionError(HeavyError):
    """Raised when an agent runs out of iterations without completing."""

    def __init__(self, agent_index: int, max_iterations: int):
        super().__init__(
            "maximum iterations reached",
            details={"agent_index": agent_index, "max_iterations": max_iterations},
        )
        self.agent_index = agent_index
        self.max_iterations = max_iterations


class AgentTimeoutError(HeavyError):
    """Raised when an agent exceeds its task deadline."""

    def __init__(self, agent_index: int, timeout_seconds: float):
        super().__init__(
            f"Agent {agent_index + 1} timed out after {timeout_seconds}s",
            details={"agent_index": agent_index, "timeout_seconds": timeout_seconds},
        )
        self.agent_index = agent_index
        self.timeout_seconds = timeout_seconds


class AggregationError(HeavyError):
    """Raised when the synthesis call fails or returns nothing."""

    pass


# ============================================================================
# API Errors
# ============================================================================


class APIError(HeavyError):
    """Base class for API-related errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, details, cause)
        self.status_code = status_code


class BadRequestError(APIError):
    """Raised for bad request errors (400)."""

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(APIError):
    """Raised when a resource is not found (404)."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        message: str | None = None,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        msg = message or f"{resource_type} not found: {resource_id}"
        super().__init__(
            msg,
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(APIError):
    """Raised for conflict errors (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code=409, details=details)


class ServiceUnavailableError(APIError):
    """Raised when a service is unavailable (503)."""

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
    ):
        msg = message or f"Service unavailable: {service_name}"
        super().__init__(msg, status_code=503, details={"service": service_name})
        self.service_name = service_name
