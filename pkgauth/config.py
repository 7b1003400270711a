"""Configuration system for pkgauth using pydantic-settings.

Supports layered configuration:
1. Built-in defaults (lowest priority)
2. pyproject.toml [tool.pkgauth] section (project-level)
3. ./pkgauth.toml (project-level, explicit)
4. ~/.config/pkgauth/config.toml (user-level, overrides project)
5. The file named by PKGAUTH_CONFIG_FILE
6. Environment variables (highest priority)

Environment variables use PKGAUTH_ prefix with nested delimiter __.
Example: PKGAUTH_OAUTH__CALLBACK_PORT, PKGAUTH_STORE__BACKEND
"""

from __future__ import annotations

import logging
import os
import sys

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


logger = logging.getLogger("pkgauth.config")


def _user_config_path() -> Path:
    """Return the user-level config file location for this platform."""
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", "~")) / "pkgauth" / "config.toml"
    return Path("~/.config/pkgauth/config.toml")


def _find_config_files() -> list[Path]:
    """Find all configuration files in order of precedence (lowest first)."""
    files = []

    # Project-level pyproject.toml [tool.pkgauth] (lowest file priority)
    pyproject = Path("pyproject.toml")
    if pyproject.exists():
        files.append(pyproject)

    pkgauth_toml = Path("pkgauth.toml")
    if pkgauth_toml.exists():
        files.append(pkgauth_toml)

    user_config = _user_config_path().expanduser()
    if user_config.exists():
        files.append(user_config)

    env_config = os.environ.get("PKGAUTH_CONFIG_FILE")
    if env_config:
        env_path = Path(env_config)
        if env_path.exists():
            files.append(env_path)

    return files


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files."""
    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", config_file, exc)
            continue

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("pkgauth", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class OAuthSettings(BaseSettings):
    """GitHub OAuth2 endpoints and local callback listener settings.

    Environment prefix: PKGAUTH_OAUTH__
    Example: PKGAUTH_OAUTH__CALLBACK_PORT=51400

    TOML section: [oauth]
    """

    model_config = SettingsConfigDict(
        env_prefix="PKGAUTH_OAUTH__",
        extra="ignore",
    )

    authorize_url: str = Field(
        default="https://github.com/login/oauth/authorize",
        description="Authorization endpoint the browser is sent to",
    )
    token_url: str = Field(
        default="https://github.com/login/oauth/access_token",
        description="Token endpoint the authorization code is exchanged at",
    )
    registration_url: str = Field(
        default="https://github.com/settings/applications/new",
        description="Page where a new OAuth application is registered",
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="REST API base URL used to list organizations",
    )
    scopes: str = Field(
        default="repo write:packages read:org",
        description="Space-separated OAuth2 scopes to request",
    )

    callback_host: str = Field(default="127.0.0.1", description="Callback listener bind address")
    callback_port: int = Field(
        default=51321,
        ge=0,
        le=65535,
        description="Callback listener port (must match the OAuth app's callback URL)",
    )
    callback_path: str = Field(default="/auth-code/callback", description="Callback route")

    auth_timeout: float = Field(
        default=300.0,
        ge=0.0,
        description="Seconds to wait for the browser redirect (0 waits forever)",
    )
    fail_on_missing_code: bool = Field(
        default=True,
        description=(
            "Fail the flow when the redirect carries no code. When false the flow "
            "keeps waiting until auth_timeout, as the original tool did."
        ),
    )
    http_timeout: float = Field(default=30.0, gt=0.0, description="Outbound request timeout")

    @field_validator("callback_path")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        """Ensure the callback route is absolute."""
        return v if v.startswith("/") else f"/{v}"

    @property
    def callback_url(self) -> str:
        """The redirect URI registered with the OAuth application."""
        host = "localhost" if self.callback_host in {"127.0.0.1", "0.0.0.0"} else self.callback_host  # noqa: S104
        return f"http://{host}:{self.callback_port}{self.callback_path}"


class StoreSettings(BaseSettings):
    """Credential store settings.

    Environment prefix: PKGAUTH_STORE__
    Example: PKGAUTH_STORE__BACKEND=memory
    """

    model_config = SettingsConfigDict(
        env_prefix="PKGAUTH_STORE__",
        extra="ignore",
    )

    backend: Literal["keyring", "memory"] = Field(
        default="keyring",
        description="Credential backend: keyring (OS secret store) or memory",
    )
    oauth_app_service: str = Field(
        default="gh-pkg-helper://github.com",
        description="Service name the OAuth application credentials live under",
    )
    package_token_service: str = Field(
        default="pkgs://github.com",
        description="Service name cached package tokens live under",
    )


class LogSettings(BaseSettings):
    """Logging settings.

    Environment prefix: PKGAUTH_LOG__
    Example: PKGAUTH_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="PKGAUTH_LOG__",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "%(levelname)s: %(message)s"


_SECTIONS: dict[str, type[BaseSettings]] = {
    "oauth": OAuthSettings,
    "store": StoreSettings,
    "log": LogSettings,
}


class PkgAuthSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Environment prefix: PKGAUTH__

    Configuration sources (in order of precedence):
    1. Built-in defaults
    2. pyproject.toml [tool.pkgauth] section
    3. ./pkgauth.toml (project-level)
    4. ~/.config/pkgauth/config.toml (user-level, overrides project)
    5. PKGAUTH_CONFIG_FILE
    6. Environment variables (highest priority)
    """

    model_config = SettingsConfigDict(
        env_prefix="PKGAUTH__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    def __init__(self, **data: Any) -> None:
        toml_config = _load_toml_config()

        # A section read from TOML is validated from a dict, which skips its own
        # env source; fold the section env vars back in so they still win.
        for name, section_cls in _SECTIONS.items():
            section = toml_config.get(name)
            if not isinstance(section, dict):
                continue
            prefix = section_cls.model_config.get("env_prefix", "")
            for field_name in section_cls.model_fields:
                env_value = os.environ.get(f"{prefix}{field_name.upper()}")
                if env_value is not None:
                    section[field_name] = env_value

        # Explicit keyword arguments take precedence over everything else
        merged = _deep_merge(toml_config, data)
        super().__init__(**merged)

    def show(self) -> str:
        """Format settings as a readable table."""
        lines = ["pkgauth configuration", "=" * 60]

        for section_name in ("oauth", "store", "log"):
            lines.append(f"\n[{section_name}]")
            for field_name, field_value in getattr(self, section_name).model_dump().items():
                value_str = str(field_value)
                if len(value_str) > 50:
                    value_str = value_str[:47] + "..."
                lines.append(f"  {field_name:22} = {value_str}")

        return "\n".join(lines)


@lru_cache(maxsize=1)
def get_settings() -> PkgAuthSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return PkgAuthSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()
