"""
Proxy configuration.

Settings are read from the environment (and an optional .env file) once at
startup and handed to the app factory. Request handlers never touch os.environ.
"""
import os
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError

DEFAULT_API_VERSION = "2024-06-01-preview"

REQUIRED_VARS = ("AOAI_ENDPOINT", "AOAI_MODEL_NAME", "AOAI_DEPLOYMENT_NAME")


class ConfigError(Exception):
    """Raised when the proxy cannot start because settings are missing or invalid."""


class Settings(BaseModel):
    """Immutable proxy settings."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    model_name: str
    deployment: str
    api_version: str = DEFAULT_API_VERSION
    api_key: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    timeout: float = 60.0
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["*"]

    @property
    def completions_url(self) -> str:
        endpoint = self.endpoint.rstrip("/")
        return (
            f"{endpoint}/openai/deployments/{self.deployment}"
            f"/chat/completions?api-version={self.api_version}"
        )


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def settings_from_env(env: Mapping[str, str]) -> Settings:
    """Build Settings from a mapping of environment variables."""
    missing = [name for name in REQUIRED_VARS if not _blank_to_none(env.get(name))]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Please set AOAI_ENDPOINT, AOAI_MODEL_NAME, and AOAI_DEPLOYMENT_NAME."
        )

    values = {
        "endpoint": env["AOAI_ENDPOINT"].strip(),
        "model_name": env["AOAI_MODEL_NAME"].strip(),
        "deployment": env["AOAI_DEPLOYMENT_NAME"].strip(),
        "api_version": _blank_to_none(env.get("AOAI_API_VERSION")) or DEFAULT_API_VERSION,
        "api_key": _blank_to_none(env.get("AOAI_API_KEY")),
        "max_tokens": _blank_to_none(env.get("AOAI_MAX_TOKENS")),
        "temperature": _blank_to_none(env.get("AOAI_TEMPERATURE")),
        "host": _blank_to_none(env.get("HOST")) or "0.0.0.0",
    }
    # Unset optionals fall back to the model defaults
    for key, var in (("timeout", "AOAI_TIMEOUT"), ("port", "PORT")):
        raw = _blank_to_none(env.get(var))
        if raw is not None:
            values[key] = raw
    origins = _blank_to_none(env.get("CORS_ORIGINS"))
    if origins:
        values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Load .env (without overriding real env vars) and build Settings."""
    load_dotenv(dotenv_path=env_file, override=False)
    return settings_from_env(os.environ)
