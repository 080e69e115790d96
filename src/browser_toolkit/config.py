"""Configuration models for the browser toolkit."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserConfig(BaseModel):
    """Settings for the remote WebDriver session."""

    endpoint: str = Field(default="http://localhost:4444")
    headless: bool = True
    ignore_certificate_errors: bool = True
    no_sandbox: bool = True
    disable_gpu: bool = True
    disable_dev_shm_usage: bool = True
    page_load_timeout: Optional[float] = Field(
        default=None,
        description="Navigation timeout (in seconds); the WebDriver default applies if unset.",
    )


class SessionConfig(BaseModel):
    """Settings for the tab lifecycle manager."""

    paywall_proxy_prefix: str = Field(default="https://12ft.io/api/proxy?ref=&q=")
    health_check_url: str = Field(default="https://example.com")
    readiness_probe_tag: str = Field(default="img")
    report_cleanup_failure: bool = Field(
        default=True,
        description="If True, a cleanup failure replaces an already extracted result.",
    )


class ServerConfig(BaseModel):
    """Settings for the HTTP server."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    public_url: Optional[str] = None


class ToolkitConfig(BaseSettings):
    """Top-level configuration for the toolkit service."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_TOOLKIT_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    api_key: str = Field(min_length=1)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


class ConfigError(ValueError):
    """Raised when the service configuration cannot be assembled."""


_MISSING_API_KEY = (
    "No API key configured: set BROWSER_TOOLKIT_API_KEY, add api_key to the "
    "config file or pass --api-key"
)


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> ToolkitConfig:
    """Build the service configuration from its layers.

    Lowest precedence first: defaults, environment (including ``env_file``),
    the YAML file at ``path``, then ``overrides``. Sections merge key by key,
    so a file that only sets ``browser.endpoint`` keeps ``browser.headless``
    from the environment.
    """

    layered = _read_yaml(path) if path else {}
    _merge(layered, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file

    try:
        # pydantic-settings deep-merges init kwargs over the environment.
        return ToolkitConfig(**layered, **settings_kwargs)
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc


def _read_yaml(path: Path) -> dict[str, Any]:
    loaded = yaml.safe_load(path.read_text())
    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ConfigError(f"{path} must contain a mapping, not {type(loaded).__name__}")
    return _merge({}, loaded)


def _merge(target: dict[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            _merge(current, value)
        elif isinstance(value, Mapping):
            target[key] = _merge({}, value)
        else:
            target[key] = value
    return target


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        if error["loc"] == ("api_key",):
            return _MISSING_API_KEY
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}")
    return "Invalid configuration: " + "; ".join(problems)
