"""Configuration models and loading."""

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.exceptions import ConfigurationError
from core.keys import select_key_source

DEFAULT_OLLAMA_URL = "http://127.0.0.1:11434"


class Settings(BaseSettings):
    """Environment-provided settings (``OLLAMA_URL``, ``API_KEYS``, ...)."""

    ollama_url: str = DEFAULT_OLLAMA_URL
    proxy_host: str = "0.0.0.0"
    proxy_port: int = Field(default=3000, ge=0, le=65535)

    # Key sources, highest precedence first.
    api_keys_sqlite: str | None = None
    api_keys_file: str | None = None
    api_keys: str | None = None

    upstream_timeout: float | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ConfigOverrides(BaseModel):
    """Values supplied on the command line; they win over the environment."""

    ollama_url: str | None = None
    proxy_host: str | None = None
    proxy_port: int | None = Field(default=None, ge=0, le=65535)

    api_keys_sqlite: str | None = None
    api_keys_file: str | None = None
    api_keys: list[str] | None = None

    upstream_timeout: float | None = None

    def has_key_override(self) -> bool:
        return (
            self.api_keys_sqlite is not None
            or self.api_keys_file is not None
            or self.api_keys is not None
        )


class AppConfig(BaseModel):
    """Fully resolved configuration handed to the proxy at startup."""

    valid_keys: list[str] = Field(default_factory=list)
    ollama_url: str = DEFAULT_OLLAMA_URL
    proxy_host: str = "0.0.0.0"
    proxy_port: int = 3000
    upstream_timeout: float | None = None
    key_source: str = "inline"

    @property
    def listen_address(self) -> str:
        return f"{self.proxy_host}:{self.proxy_port}"


def load_settings() -> Settings:
    """Read settings from the environment and ``.env``."""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"invalid environment configuration: {e}") from e


def load_config(
    overrides: ConfigOverrides | None = None,
    settings: Settings | None = None,
) -> AppConfig:
    """Resolve configuration: explicit overrides > environment > defaults.

    When any key override is present, keys are loaded from the overrides
    alone; otherwise from the environment-selected source.
    """
    overrides = overrides or ConfigOverrides()
    settings = settings or load_settings()

    if overrides.has_key_override():
        source = select_key_source(
            overrides.api_keys_sqlite, overrides.api_keys_file, overrides.api_keys
        )
    else:
        source = select_key_source(
            settings.api_keys_sqlite, settings.api_keys_file, settings.api_keys
        )

    ollama_url = overrides.ollama_url if overrides.ollama_url is not None else settings.ollama_url
    timeout = (
        overrides.upstream_timeout
        if overrides.upstream_timeout is not None
        else settings.upstream_timeout
    )

    return AppConfig(
        valid_keys=source.resolve_keys(),
        ollama_url=ollama_url.rstrip("/"),
        proxy_host=overrides.proxy_host or settings.proxy_host,
        proxy_port=overrides.proxy_port if overrides.proxy_port is not None else settings.proxy_port,
        upstream_timeout=timeout,
        key_source=source.describe(),
    )
