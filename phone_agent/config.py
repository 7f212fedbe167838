"""
Configuration
=============

Settings for the model provider, the ADB device, the web server and the
agent loop, read from environment variables and ``.env``.

CLI flags never mutate these objects; ``phone_agent.cli`` builds an
updated copy instead.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Shared config that all settings classes use to load .env
_shared_config = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    env_prefix="",
    extra="ignore",
)


class LLMSettings(BaseSettings):
    """Model configuration for the OpenAI-compatible, Groq and Gemini providers."""

    model_config = _shared_config

    llm_provider: Literal["openai", "groq", "gemini"] = Field(
        default="openai",
        description="Model provider: 'openai' (any OpenAI-compatible endpoint), 'groq' or 'gemini'",
    )

    # OpenAI-compatible endpoint (AutoGLM by default)
    autoglm_base_url: str = Field(
        default="https://open.bigmodel.cn/api/paas/v4",
        description="Base URL of the OpenAI-compatible chat completions API",
    )
    autoglm_api_key: str = Field(default="", description="API key for the OpenAI-compatible endpoint")
    autoglm_model: str = Field(default="autoglm-phone", description="Model name sent to the endpoint")

    # Groq settings
    groq_api_key: str = Field(default="", description="Groq API key")
    groq_model: str = Field(
        default="meta-llama/llama-4-scout-17b-16e-instruct",
        description="Groq model ID (must support vision)",
    )

    # Gemini settings
    gemini_api_key: str = Field(default="", description="Google AI API key for Gemini")
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model ID")

    # Sampling parameters shared by every provider
    llm_max_tokens: int = Field(default=3000, description="Max output tokens per reply")
    llm_temperature: float = Field(default=0.0, description="Sampling temperature")
    llm_top_p: float = Field(default=0.85, description="Top-p sampling parameter")
    llm_frequency_penalty: float = Field(default=0.2, description="Frequency penalty")

    def get_active_api_key(self) -> str:
        """Return the API key for the selected provider."""
        if self.llm_provider == "groq":
            return self.groq_api_key
        if self.llm_provider == "gemini":
            return self.gemini_api_key
        return self.autoglm_api_key

    def get_active_model(self) -> str:
        """Return the model name for the selected provider."""
        if self.llm_provider == "groq":
            return self.groq_model
        if self.llm_provider == "gemini":
            return self.gemini_model
        return self.autoglm_model


class DeviceSettings(BaseSettings):
    """ADB device configuration."""

    model_config = _shared_config

    adb_path: str = Field(
        default="",
        description="Path to the adb executable (leave empty to search PATH and ANDROID_HOME)",
    )
    adb_device_serial: str = Field(
        default="",
        description="Default ADB device serial (leave empty to use the first device)",
    )


class ServerSettings(BaseSettings):
    """Server configuration settings."""

    model_config = _shared_config

    server_host: str = Field(default="0.0.0.0", description="Server host")
    server_port: int = Field(default=3000, description="Server port")
    debug: bool = Field(default=True, description="Debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    cors_origins: str = Field(default="*", description="CORS origins")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        return v.upper() if isinstance(v, str) else v

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


class AgentSettings(BaseSettings):
    """Agent configuration settings."""

    model_config = _shared_config

    autoglm_max_steps: int = Field(default=100, ge=1, description="Maximum steps per task")
    max_parse_retries: int = Field(
        default=3,
        ge=0,
        description="Corrective model rounds allowed per step when the action cannot be parsed",
    )
    action_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds to wait after a device action so the UI can settle",
    )


class Settings(BaseSettings):
    """
    Main settings class combining all configuration sections.

    Usage:
        from phone_agent.config import get_settings
        settings = get_settings()
        print(settings.llm.autoglm_model)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    llm: LLMSettings = Field(default_factory=LLMSettings)
    device: DeviceSettings = Field(default_factory=DeviceSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings loaded from environment.
    """
    return Settings()
