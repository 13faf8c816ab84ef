"""
Configuration system using Pydantic for type-safe settings management.

One YAML file describes every environment the tool can talk to: named issue
tracker instances, named build server instances, and the run-wide options.
Instances are looked up by the names passed on the command line (``on=``,
``checkon=``); an unknown name is an error, never a silent default.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from buildgate.branch_key import DEFAULT_TICKET_PATTERN
from buildgate.exceptions import ConfigurationError, UnknownInstanceError


class TrackerInstanceConfig(BaseModel):
    """Jira instance and the workflow it drives.

    Passwords support ``${ENV_VAR}`` references in the YAML file.
    """

    url: str = Field(..., description="Base URL of the Jira instance")
    user: str = Field(..., description="User that performs the transitions")
    password: SecretStr = Field(..., description="Password or API token of the user")
    project_key: str = Field(..., description="Project key, e.g. PROJ")
    branch_field_id: int = Field(..., description="Numeric id of the custom field holding the branch")
    test_status: str = Field(..., description="Status name of issues awaiting test")
    release_status: str = Field(..., description="Status name of issues awaiting release")
    transition_test_id: str = Field(..., description="Transition that moves an issue to test")
    transition_release_id: str = Field(..., description="Transition that moves an issue to release")
    transition_failed_test_id: str = Field(..., description="Transition back to development from the test gate")
    transition_failed_release_id: str = Field(
        ..., description="Transition back to development from the release gate"
    )
    default_environment_url: str = Field(..., description="Environment URL for issues without a branch")
    page_size: int = Field(default=100, ge=1, le=1000, description="Issues fetched per search request")

    @property
    def branch_field_jql(self) -> str:
        """Custom field reference used in JQL, e.g. ``cf[11104]``."""
        return f"cf[{self.branch_field_id}]"

    @property
    def branch_field_name(self) -> str:
        """Custom field name used in issue JSON, e.g. ``customfield_11104``."""
        return f"customfield_{self.branch_field_id}"


class BuildServerInstanceConfig(BaseModel):
    """TeamCity instance settings."""

    url: str = Field(..., description="Base URL used for REST calls")
    user: str = Field(..., description="TeamCity user")
    password: SecretStr = Field(..., description="TeamCity password")
    url_to_send: str | None = Field(
        default=None, description="Public URL used in links posted to the tracker (defaults to url)"
    )
    watched_build_types: list[str] = Field(
        default_factory=list,
        description="Build types whose running/queued builds block a new build (empty means all)",
    )
    branch_prefixes_to_ignore: list[str] = Field(
        default_factory=list, description="Branches starting with any of these are never enqueued"
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")

    @field_validator("watched_build_types", "branch_prefixes_to_ignore", mode="before")
    @classmethod
    def split_comma_separated(cls, value: object) -> object:
        """Accept ``"a, b"`` as well as a YAML list; trim entries and drop blanks."""
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [str(item).strip() for item in value if item is not None and str(item).strip()]
        return value

    @model_validator(mode="after")
    def default_url_to_send(self) -> BuildServerInstanceConfig:
        if not self.url_to_send:
            self.url_to_send = self.url
        self.url = self.url.rstrip("/")
        self.url_to_send = self.url_to_send.rstrip("/")
        return self


class RunConfig(BaseModel):
    """Options that apply to every run."""

    start_delay_seconds: float = Field(
        default=5.0, ge=0.0, description="Pause before computing build candidates"
    )
    property_prefix: str = Field(default="env.buildgate.", description="Prefix of enqueued build properties")
    environment_url_template: str = Field(
        default="http://{domain}", description="Environment URL built from the display domain"
    )
    ticket_pattern: str = Field(default=DEFAULT_TICKET_PATTERN, description="Regular expression of ticket codes")
    default_tracker: str = Field(default="default", description="Tracker instance used when none is given")

    @field_validator("environment_url_template")
    @classmethod
    def template_has_domain(cls, value: str) -> str:
        if "{domain}" not in value:
            raise ValueError("environment_url_template must contain '{domain}'")
        return value

    @field_validator("ticket_pattern")
    @classmethod
    def pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"ticket_pattern is not a valid regular expression: {e}") from e
        return value

    def environment_url(self, domain: str | None) -> str | None:
        if not domain:
            return None
        return self.environment_url_template.format(domain=domain)


class BuildGateSettings(BaseSettings):
    """Main settings object.

    Combines the instance maps and run options, and provides loading from a
    YAML file with environment variable interpolation.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDGATE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    trackers: dict[str, TrackerInstanceConfig] = Field(default_factory=dict)
    build_servers: dict[str, BuildServerInstanceConfig] = Field(default_factory=dict)
    run: RunConfig = Field(default_factory=RunConfig)

    def tracker(self, name: str) -> TrackerInstanceConfig:
        """Look up a tracker instance by name.

        Raises:
            UnknownInstanceError: If no tracker with this name is configured
        """
        try:
            return self.trackers[name]
        except KeyError:
            raise UnknownInstanceError("tracker", name, list(self.trackers)) from None

    def build_server(self, name: str) -> BuildServerInstanceConfig:
        """Look up a build server instance by name.

        Raises:
            UnknownInstanceError: If no build server with this name is configured
        """
        try:
            return self.build_servers[name]
        except KeyError:
            raise UnknownInstanceError("build server", name, list(self.build_servers)) from None

    @classmethod
    def from_yaml(cls, config_path: str) -> BuildGateSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} syntax for environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            BuildGateSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing required fields
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")
        if not config_dict.get("trackers") and not config_dict.get("build_servers"):
            raise ConfigurationError(f"No tracker or build server settings found in {config_path}")

        try:
            return cls(**config_dict)
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports two syntaxes:
        - ${VAR_NAME} - Required environment variable (raises if not set)
        - ${VAR_NAME:-default} - Optional with default value

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
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
