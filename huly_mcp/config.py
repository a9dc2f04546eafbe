"""
Configuration for the Huly MCP server.

Values come from environment variables, with an optional ``.hulyrc.json`` in
the working directory for non-sensitive settings (url, workspace,
connectionTimeout). Environment variables always win. Credentials are only
read from the environment:

  HULY_URL                  Platform URL (http/https)
  HULY_WORKSPACE            Workspace name
  HULY_TOKEN                API token, or
  HULY_EMAIL/HULY_PASSWORD  Account credentials
  HULY_CONNECTION_TIMEOUT   Milliseconds, default 30000
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

logger = logging.getLogger(__name__)

# ─── Defaults ────────────────────────────────────────────────────────────────

DEFAULT_TIMEOUT_MS = 30000
CONFIG_FILE_NAME = ".hulyrc.json"


class ConfigError(Exception):
    """Invalid or missing configuration."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Must be a valid http or https URL")
    return value


def _check_not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("Must not be empty")
    return value


# ─── Models ──────────────────────────────────────────────────────────────────


class FileConfig(BaseModel):
    """Contents of .hulyrc.json. Only non-sensitive values are accepted."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    url: Optional[str] = None
    workspace: Optional[str] = None
    connection_timeout: Optional[int] = Field(default=None, alias="connectionTimeout", gt=0)

    @field_validator("url")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _check_url(value)

    @field_validator("workspace")
    @classmethod
    def check_workspace(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else _check_not_blank(value)


class HulyConfig(BaseModel):
    """Validated server configuration."""
    model_config = ConfigDict(frozen=True)

    url: str
    workspace: str
    email: Optional[str] = None
    password: Optional[SecretStr] = None
    token: Optional[SecretStr] = None
    connection_timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, description="Milliseconds")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _check_url(value)

    @field_validator("workspace")
    @classmethod
    def check_workspace(cls, value: str) -> str:
        return _check_not_blank(value)

    @property
    def timeout_seconds(self) -> float:
        return self.connection_timeout / 1000


# ─── Loading ─────────────────────────────────────────────────────────────────


def load_config_file(path: Path) -> Optional[FileConfig]:
    """Read ``path`` if it exists.

    Raises:
        ConfigError: if the file is unreadable, not JSON, or fails validation.
    """
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON") from e
    try:
        return FileConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Config file validation failed: {e.errors(include_url=False)[0]['msg']}") from e


def _env(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    return value.strip()


def _require(value: Optional[Any], key: str) -> Any:
    if value is None:
        raise ConfigError(f"Missing required config: {key}", field=key)
    return value


def load_config(env: Optional[Mapping[str, str]] = None, cwd: Optional[Path] = None) -> HulyConfig:
    """Load configuration from the environment and optional config file.

    Args:
        env: Environment mapping (defaults to ``os.environ``).
        cwd: Directory searched for .hulyrc.json (defaults to the working directory).

    Returns:
        HulyConfig: The validated configuration.

    Raises:
        ConfigError: on missing or invalid values.
    """
    env = os.environ if env is None else env
    file_config = load_config_file((cwd or Path.cwd()) / CONFIG_FILE_NAME) or FileConfig()

    url = _require(_env(env, "HULY_URL") or file_config.url, "HULY_URL")
    workspace = _require(_env(env, "HULY_WORKSPACE") or file_config.workspace, "HULY_WORKSPACE")

    timeout: int = file_config.connection_timeout or DEFAULT_TIMEOUT_MS
    raw_timeout = _env(env, "HULY_CONNECTION_TIMEOUT")
    if raw_timeout is not None:
        try:
            timeout = int(raw_timeout)
        except ValueError:
            raise ConfigError("Invalid value for HULY_CONNECTION_TIMEOUT", field="HULY_CONNECTION_TIMEOUT") from None

    token = _env(env, "HULY_TOKEN")
    email = _env(env, "HULY_EMAIL")
    password = _env(env, "HULY_PASSWORD")
    if token is None:
        _require(email, "HULY_EMAIL")
        _require(password, "HULY_PASSWORD")

    try:
        return HulyConfig(
            url=url,
            workspace=workspace,
            email=email,
            password=password,
            token=token,
            connection_timeout=timeout,
        )
    except ValidationError as e:
        issue = e.errors(include_url=False)[0]
        field = f"HULY_{str(issue['loc'][0]).upper()}"
        raise ConfigError(f"{field}: {issue['msg']}", field=field) from None


def parse_toolsets(raw: Optional[str], known: Iterable[str]) -> Optional[FrozenSet[str]]:
    """Parse the TOOLSETS variable into enabled category names.

    Unknown categories are logged and ignored. Returns ``None`` (all tools)
    when nothing valid was requested.
    """
    if raw is None or not raw.strip():
        return None
    valid = {name.lower() for name in known}
    enabled = set()
    for name in (part.strip().lower() for part in raw.split(",")):
        if not name:
            continue
        if name in valid:
            enabled.add(name)
        else:
            logger.warning(
                "Unknown toolset category %r, ignoring. Valid categories: %s", name, ", ".join(sorted(valid))
            )
    return frozenset(enabled) if enabled else None


def env_flag(env: Mapping[str, str], key: str) -> bool:
    return (env.get(key) or "").strip().lower() in ("1", "true", "yes", "on")


def log_level(env: Mapping[str, str]) -> int:
    name = (env.get("HULY_LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def config_summary(config: HulyConfig) -> Dict[str, Any]:
    """Non-sensitive view of the configuration, for start-up logging."""
    return {
        "url": config.url,
        "workspace": config.workspace,
        "auth": "token" if config.token is not None else "password",
        "connection_timeout_ms": config.connection_timeout,
    }
