"""
Configuration system using Pydantic for type-safe settings management.

Settings come from a YAML file (with ``${VAR}`` interpolation) and from
``JTIMER_*`` environment variables. The API token is a secret and belongs in
the credential store, so it is never written back to the YAML file.

The Jira client never reads settings itself: callers build an immutable
``JiraConnection`` snapshot and hand it over. Reconfiguring means building a
new snapshot and a new client.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from jtimer import __version__
from jtimer.exceptions import ConfigurationError

log = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "jtimer" / "config.yaml"


class JiraConfig(BaseModel):
    """Jira site and identity."""

    domain: str = Field(default="", description="Site name, host or URL (e.g. 'acme' or 'acme.atlassian.net')")
    email: str = Field(default="", description="Account email used for Basic auth")
    api_token: SecretStr | None = Field(
        default=None,
        description="API token; normally kept in the credential store instead",
    )
    default_jql: str | None = Field(default=None, description="Query tried first when browsing issues")


class HttpConfig(BaseModel):
    """HTTP client behaviour."""

    request_timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    resource_timeout: float = Field(default=60.0, gt=0, description="Timeout for a whole exchange in seconds")
    user_agent: str = Field(default=f"jtimer/{__version__}", description="User-Agent header")


class JTimerSettings(BaseSettings):
    """Top-level jtimer settings."""

    model_config = SettingsConfigDict(
        env_prefix="JTIMER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    jira: JiraConfig = Field(default_factory=JiraConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    log_level: str = Field(default="WARNING", description="Minimum log level")

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> JTimerSettings:
        """Load settings from a YAML file with environment variable interpolation.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_file.read_text()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ``${VAR_NAME}`` and ``${VAR_NAME:-default}`` placeholders.

        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            if default_value is not None:
                return default_value
            raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))

    def to_yaml_dict(self) -> dict[str, Any]:
        """Serializable form for the settings file, without the API token."""
        data = self.model_dump(mode="json", exclude={"jira": {"api_token"}})
        if data["jira"].get("default_jql") is None:
            data["jira"].pop("default_jql")
        return data

    def connection(self, api_token: str | None = None) -> JiraConnection:
        """Snapshot of everything the Jira client needs.

        ``api_token`` (usually from the credential store) overrides any token
        present in the settings themselves.
        """
        token = api_token
        if token is None and self.jira.api_token is not None:
            token = self.jira.api_token.get_secret_value()
        return JiraConnection(
            domain=self.jira.domain,
            email=self.jira.email,
            api_token=token,
            request_timeout=self.http.request_timeout,
            resource_timeout=self.http.resource_timeout,
            user_agent=self.http.user_agent,
        )


@dataclass(frozen=True)
class JiraConnection:
    """Immutable connection configuration injected into the Jira client."""

    domain: str
    email: str
    api_token: str | None
    request_timeout: float = 30.0
    resource_timeout: float = 60.0
    user_agent: str = f"jtimer/{__version__}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.email.strip()) and bool(self.api_token)

    def __repr__(self) -> str:
        # Keep the token out of tracebacks and logs
        token = "***" if self.api_token else None
        return f"JiraConnection(domain={self.domain!r}, email={self.email!r}, api_token={token!r})"


class SettingsStore:
    """Reads and writes the settings file.

    A missing file is not an error: defaults (plus environment) are used
    until the user saves a configuration.
    """

    def __init__(self, path: str | Path = DEFAULT_CONFIG_PATH) -> None:
        self.path = Path(path)

    def load(self) -> JTimerSettings:
        if not self.path.exists():
            log.debug("settings_file_missing", path=str(self.path))
            return JTimerSettings()
        return JTimerSettings.from_yaml(self.path)

    def save(self, settings: JTimerSettings) -> None:
        """Persist settings (minus the API token).

        Raises:
            ConfigurationError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(settings.to_yaml_dict(), sort_keys=False))
        except OSError as e:
            raise ConfigurationError(f"Cannot write configuration file: {self.path}") from e
        log.info("settings_saved", path=str(self.path))
