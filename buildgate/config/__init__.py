"""Configuration for buildgate.

Key Components:
    - BuildGateSettings: Main configuration container with YAML loading support
    - TrackerInstanceConfig: Jira instance and workflow transition settings
    - BuildServerInstanceConfig: TeamCity instance settings
    - RunConfig: Run-wide options

Example:
    >>> from buildgate.config import BuildGateSettings
    >>> settings = BuildGateSettings.from_yaml("buildgate.yaml")
    >>> teamcity = settings.build_server("dev")
"""

from buildgate.config.settings import (
    BuildGateSettings,
    BuildServerInstanceConfig,
    RunConfig,
    TrackerInstanceConfig,
)

__all__ = [
    "BuildGateSettings",
    "BuildServerInstanceConfig",
    "RunConfig",
    "TrackerInstanceConfig",
]
