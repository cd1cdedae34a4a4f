"""Application configuration management.

This module provides configuration loading from environment variables and YAML files.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_SYSTEM_PROMPT = """You are a meticulous research analyst working as one member of a team.
You receive a single focused subtask and must investigate it thoroughly.

METHOD:
- Use `search_web` to gather current information from several sources
- Use `browse_link` to read the most authoritative pages in detail
- Use `calculate` for any arithmetic instead of computing in your head
- Cross-check facts across sources and note disagreements
- Cite the sources you relied on

When your analysis is complete, write your findings as your final message and
call the `mark_task_complete` tool with a short summary of what you found."""

DEFAULT_QUESTION_GENERATION_PROMPT = """You are an expert task orchestrator. Break the user's query into {num_agents} distinct, complementary investigation tasks so that {num_agents} independent research agents can work on them in parallel.

Original user query: {user_input}

Each task must:
- Cover a different angle (background, current state, comparison, practical use, risks, future outlook)
- Be specific and self-contained
- Mention the subject of the original query explicitly

Return exactly {num_agents} tasks as a JSON array of strings: ["task 1", "task 2", ...]
Only return the JSON array."""

DEFAULT_SYNTHESIS_PROMPT = """You have {num_responses} research reports produced independently by different agents working on the same user request.

{agent_responses}
Write one comprehensive, well-structured answer that:
- Integrates the strongest insights from every report
- Resolves conflicting claims with reasoning, or states the disagreement
- Removes repetition
- Uses clear headings and ends with concrete conclusions or recommendations

Do not mention the agents or the fact that the answer was assembled from several reports."""


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogFormat(str, Enum):
    """Log output format types."""

    JSON = "json"
    CONSOLE = "console"


class LLMProviderName(str, Enum):
    """Supported LLM backends."""

    OPENROUTER = "openrouter"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


# Must match each provider class's DEFAULT_MODEL
DEFAULT_MODELS: dict[LLMProviderName, str] = {
    LLMProviderName.OPENROUTER: "moonshotai/kimi-k2",
    LLMProviderName.OPENAI: "gpt-4o-mini",
    LLMProviderName.ANTHROPIC: "claude-haiku-4-5-20251001",
}


class AppSettings(BaseModel):
    """Application settings."""

    env: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    name: str = Field(default="Make It Heavy", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: LogFormat = Field(default=LogFormat.JSON, description="Log format")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


class LLMConfig(BaseModel):
    """Remote model connection settings."""

    provider: LLMProviderName = Field(
        default=LLMProviderName.OPENROUTER, description="LLM backend"
    )
    api_key: str = Field(default="", description="API key for the LLM backend")
    base_url: str | None = Field(
        default=None,
        description="Base URL override; None uses the provider default",
    )
    model: str | None = Field(
        default=None,
        description="Model identifier; None uses the provider default",
    )
    temperature: float = Field(default=0.7, description="Sampling temperature")
    max_tokens: int = Field(default=4096, description="Max tokens per completion")
    request_timeout: float = Field(
        default=120.0, description="Per-request timeout in seconds"
    )

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_tokens must be positive")
        return v

    @property
    def resolved_model(self) -> str:
        """The configured model, or the provider's default."""
        return self.model or DEFAULT_MODELS[self.provider]


class RetryConfig(BaseModel):
    """Backoff policy for gateway calls."""

    max_retries: int = Field(
        default=3, ge=0, description="Retries after the first attempt"
    )
    initial_delay: float = Field(default=1.0, ge=0.0, description="First delay (s)")
    multiplier: float = Field(default=2.0, ge=1.0, description="Delay growth factor")
    max_delay: float = Field(default=30.0, ge=0.0, description="Delay cap (s)")

    def delay_for(self, retry_number: int) -> float:
        """Return the sleep before retry ``retry_number`` (1-based)."""
        delay = self.initial_delay * (self.multiplier ** (retry_number - 1))
        return min(delay, self.max_delay)


class AgentConfig(BaseModel):
    """Settings for each agent loop."""

    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT, description="System prompt for every agent"
    )
    max_iterations: int = Field(default=15, description="Gateway calls per agent")
    completion_tool: str = Field(
        default="mark_task_complete", description="Tool that ends an agent loop"
    )

    @field_validator("max_iterations")
    @classmethod
    def validate_max_iterations(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_iterations must be at least 1")
        return v


class OrchestratorConfig(BaseModel):
    """Fan-out and prompt settings for the orchestrator."""

    parallel_agents: int = Field(default=4, description="Number of parallel agents")
    task_timeout: int = Field(default=600, description="Per-agent deadline (s)")
    question_generation_prompt: str = Field(
        default=DEFAULT_QUESTION_GENERATION_PROMPT,
        description="Template with {user_input} and {num_agents}",
    )
    synthesis_prompt: str = Field(
        default=DEFAULT_SYNTHESIS_PROMPT,
        description="Template with {num_responses} and {agent_responses}",
    )

    @field_validator("parallel_agents", "task_timeout")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v


class SearchConfig(BaseModel):
    """Web search and page fetch settings."""

    api_key: str = Field(default="", description="Jina API key")
    max_results: int = Field(default=10, ge=1, description="Upper bound on results")
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; MakeItHeavy/1.0; +research-agent)",
        description="User-Agent header for page fetches",
    )
    request_timeout: float = Field(default=30.0, description="HTTP timeout (s)")
    max_page_chars: int = Field(
        default=5000, ge=1, description="Characters of page text returned"
    )


class OutputConfig(BaseModel):
    """Where final answers are written."""

    enabled: bool = Field(default=True, description="Save answers to disk")
    directory: str = Field(default="output", description="Base output directory")


class AppConfig(BaseModel):
    """Main application configuration."""

    app: AppSettings = Field(default_factory=AppSettings)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "AppConfig":
        """Load configuration from environment variables only.

        Args:
            env_file: Optional path to .env file

        Returns:
            AppConfig instance populated from environment
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls._apply_env_overrides(cls())

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "AppConfig":
        """Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            AppConfig instance populated from YAML

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If YAML content is invalid
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError("YAML content must be a dictionary")

        return cls._from_yaml_dict(data)

    @classmethod
    def _from_yaml_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """Create config from parsed YAML dictionary."""
        sections: dict[str, type[BaseModel]] = {
            "app": AppSettings,
            "llm": LLMConfig,
            "retry": RetryConfig,
            "agent": AgentConfig,
            "orchestrator": OrchestratorConfig,
            "search": SearchConfig,
            "output": OutputConfig,
            "logging": LoggingConfig,
        }

        config_data: dict[str, Any] = {}
        for key, model in sections.items():
            section = data.get(key)
            if section:
                config_data[key] = model(**section)

        return cls(**config_data)

    @classmethod
    def load(
        cls,
        yaml_path: str | Path | None = None,
        env_file: str | Path | None = None,
    ) -> "AppConfig":
        """Load configuration with YAML as base and environment overrides.

        Environment variables take precedence over YAML settings.

        Args:
            yaml_path: Optional path to YAML configuration file
            env_file: Optional path to .env file

        Returns:
            AppConfig instance with merged configuration
        """
        if yaml_path:
            config = cls.from_yaml(yaml_path)
        else:
            config = cls()

        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls._apply_env_overrides(config)

    @classmethod
    def _apply_env_overrides(cls, config: "AppConfig") -> "AppConfig":
        """Apply environment variable overrides to existing config."""
        data = config.model_dump(mode="json")

        # App settings
        if os.getenv("APP_ENV"):
            data["app"]["env"] = os.getenv("APP_ENV")
        if os.getenv("APP_DEBUG"):
            data["app"]["debug"] = os.getenv("APP_DEBUG", "").lower() == "true"
        if os.getenv("APP_HOST"):
            data["app"]["host"] = os.getenv("APP_HOST")
        if os.getenv("APP_PORT"):
            data["app"]["port"] = int(os.getenv("APP_PORT", "8000"))

        # LLM
        if os.getenv("LLM_PROVIDER"):
            data["llm"]["provider"] = os.getenv("LLM_PROVIDER", "").lower()
        api_key = os.getenv("OPENROUTER_API_KEY") or os.getenv("LLM_API_KEY")
        if api_key:
            data["llm"]["api_key"] = api_key
        if os.getenv("LLM_BASE_URL"):
            data["llm"]["base_url"] = os.getenv("LLM_BASE_URL")
        if os.getenv("LLM_MODEL"):
            data["llm"]["model"] = os.getenv("LLM_MODEL")
        if os.getenv("LLM_TEMPERATURE"):
            data["llm"]["temperature"] = float(os.getenv("LLM_TEMPERATURE", "0.7"))

        # Agent / orchestrator
        if os.getenv("MAX_ITERATIONS"):
            data["agent"]["max_iterations"] = int(os.getenv("MAX_ITERATIONS", "15"))
        if os.getenv("PARALLEL_AGENTS"):
            data["orchestrator"]["parallel_agents"] = int(
                os.getenv("PARALLEL_AGENTS", "4")
            )
        if os.getenv("TASK_TIMEOUT"):
            data["orchestrator"]["task_timeout"] = int(os.getenv("TASK_TIMEOUT", "600"))

        # Search
        if os.getenv("JINA_API_KEY"):
            data["search"]["api_key"] = os.getenv("JINA_API_KEY", "")

        # Output
        if os.getenv("OUTPUT_DIR"):
            data["output"]["directory"] = os.getenv("OUTPUT_DIR")

        # Logging
        if os.getenv("LOG_LEVEL"):
            data["logging"]["level"] = os.getenv("LOG_LEVEL", "INFO")
        if os.getenv("LOG_FORMAT"):
            data["logging"]["format"] = os.getenv("LOG_FORMAT", "json")

        return cls._from_yaml_dict(data)


# Global configuration instance, used by entry points only
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance.

    Returns:
        The global AppConfig instance

    Raises:
        RuntimeError: If configuration has not been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call init_config() first.")
    return _config


def init_config(
    yaml_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> AppConfig:
    """Initialize the global configuration.

    Args:
        yaml_path: Optional path to YAML configuration file
        env_file: Optional path to .env file

    Returns:
        The initialized AppConfig instance
    """
    global _config
    _config = AppConfig.load(yaml_path=yaml_path, env_file=env_file)
    return _config


def reset_config() -> None:
    """Reset the global configuration (mainly for testing)."""
    global _config
    _config = None
