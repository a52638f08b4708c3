"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# LLM Provider Configuration Models
# =====================================================================


class OpenRouterConfig(BaseModel):
    """OpenRouter API configuration."""

    api_key: Optional[str] = Field(
        default=None, alias="OPENROUTER_API_KEY", description="OpenRouter API key for authentication"
    )
    base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
        description="OpenRouter OpenAI-compatible API base URL",
    )
    model: str = Field(
        default="anthropic/claude-sonnet-4", alias="OPENROUTER_MODEL", description="Default chat model to use"
    )

    model_config = {"populate_by_name": True}


class OllamaConfig(BaseModel):
    """Ollama (local model) configuration."""

    base_url: str = Field(
        default="http://localhost:11434/v1",
        alias="OLLAMA_BASE_URL",
        description="Ollama OpenAI-compatible API base URL",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Agent Runtime Configuration Models
# =====================================================================


class AgentLoopConfig(BaseModel):
    """Agent loop controller configuration."""

    provider: str = Field(
        default="openrouter",
        alias="COWORK_AI_PROVIDER",
        description="Model provider in use (openrouter or ollama); ollama enables argument repair",
    )
    max_steps: int = Field(
        default=15, alias="COWORK_AI_MAX_STEPS", description="Maximum model/tool round trips per turn"
    )

    model_config = {"populate_by_name": True}


class ApprovalConfig(BaseModel):
    """Tool approval gateway configuration."""

    timeout_seconds: float = Field(
        default=60.0,
        alias="COWORK_AI_APPROVAL_TIMEOUT_SECONDS",
        description="Seconds before an unanswered approval request is denied",
    )

    model_config = {"populate_by_name": True}


class ContextConfig(BaseModel):
    """Context window manager configuration."""

    compaction_threshold: float = Field(
        default=0.8,
        alias="COWORK_AI_COMPACTION_THRESHOLD",
        description="Fraction of the model's context limit that triggers proactive compaction",
    )
    keep_last: int = Field(
        default=6, alias="COWORK_AI_COMPACTION_KEEP_LAST", description="Messages kept verbatim by compaction"
    )
    emergency_keep_last: int = Field(
        default=4,
        alias="COWORK_AI_EMERGENCY_KEEP_LAST",
        description="Messages kept verbatim by compaction after a context-overflow error",
    )
    default_limit: int = Field(
        default=100_000,
        alias="COWORK_AI_DEFAULT_CONTEXT_LIMIT",
        description="Context limit assumed for models missing from the limit table",
    )
    summary_model: str = Field(
        default="google/gemini-2.0-flash-001",
        alias="COWORK_AI_SUMMARY_MODEL",
        description="Model used to summarize compacted history",
    )

    model_config = {"populate_by_name": True}


class SafetyConfig(BaseModel):
    """Safety filter configuration."""

    app_database_name: str = Field(
        default="cowork-ai.db",
        alias="COWORK_AI_DATABASE_NAME",
        description="File name of the application's own database, always denied to read tools",
    )
    home_dir: Optional[str] = Field(
        default=None,
        alias="COWORK_AI_HOME_DIR",
        description="Home directory shown to the model and used to expand '~' (defaults to the user's home)",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="COWORK_AI_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="COWORK_AI_LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the rotating log file",
        alias="COWORK_AI_LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Write DEBUG logs to a file under log_file_dir",
        alias="COWORK_AI_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Flat fields backing the grouped configurations below
    # =====================================================================
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1", alias="OPENROUTER_BASE_URL")
    openrouter_model: str = Field(default="anthropic/claude-sonnet-4", alias="OPENROUTER_MODEL")
    ollama_base_url: str = Field(default="http://localhost:11434/v1", alias="OLLAMA_BASE_URL")
    provider: str = Field(default="openrouter", alias="COWORK_AI_PROVIDER")
    max_steps: int = Field(default=15, alias="COWORK_AI_MAX_STEPS")
    approval_timeout_seconds: float = Field(default=60.0, alias="COWORK_AI_APPROVAL_TIMEOUT_SECONDS")
    compaction_threshold: float = Field(default=0.8, alias="COWORK_AI_COMPACTION_THRESHOLD")
    compaction_keep_last: int = Field(default=6, alias="COWORK_AI_COMPACTION_KEEP_LAST")
    emergency_keep_last: int = Field(default=4, alias="COWORK_AI_EMERGENCY_KEEP_LAST")
    default_context_limit: int = Field(default=100_000, alias="COWORK_AI_DEFAULT_CONTEXT_LIMIT")
    summary_model: str = Field(default="google/gemini-2.0-flash-001", alias="COWORK_AI_SUMMARY_MODEL")
    app_database_name: str = Field(default="cowork-ai.db", alias="COWORK_AI_DATABASE_NAME")
    home_dir: Optional[str] = Field(default=None, alias="COWORK_AI_HOME_DIR")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def openrouter(self) -> OpenRouterConfig:
        """Get OpenRouter configuration from environment variables."""
        return OpenRouterConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def ollama(self) -> OllamaConfig:
        """Get Ollama configuration from environment variables."""
        return OllamaConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def agent_loop(self) -> AgentLoopConfig:
        """Get agent loop configuration from environment variables."""
        return AgentLoopConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def approval(self) -> ApprovalConfig:
        """Get approval gateway configuration from environment variables."""
        return ApprovalConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def context(self) -> ContextConfig:
        """Get context window configuration from environment variables."""
        return ContextConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def safety(self) -> SafetyConfig:
        """Get safety filter configuration from environment variables."""
        return SafetyConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
