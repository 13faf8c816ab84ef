"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock

import pytest

from buildgate.cli.params import RunParameters
from buildgate.config.settings import BuildServerInstanceConfig, RunConfig, TrackerInstanceConfig
from buildgate.models.domain import Build, BuildParameters, BuildStatus, Change, Issue, OperationType, TrackerSync
from buildgate.providers.base import BuildServer, IssueTracker


@pytest.fixture
def tracker_config() -> TrackerInstanceConfig:
    """Jira instance settings for testing."""
    return TrackerInstanceConfig(
        url="https://jira.test.com",
        user="release-bot",
        password="secret",
        project_key="PROJ",
        branch_field_id=11104,
        test_status="Awaiting test",
        release_status="Awaiting release",
        transition_test_id="21",
        transition_release_id="31",
        transition_failed_test_id="41",
        transition_failed_release_id="51",
        default_environment_url="http://stage.test.com",
    )


@pytest.fixture
def build_server_config() -> BuildServerInstanceConfig:
    """TeamCity instance settings for testing."""
    return BuildServerInstanceConfig(
        url="http://teamcity.internal:8111/",
        url_to_send="https://teamcity.test.com",
        user="release-bot",
        password="secret",
        watched_build_types=["Deploy_Dev"],
        branch_prefixes_to_ignore=["hotfix-"],
    )


@pytest.fixture
def run_config() -> RunConfig:
    """Run options without the start delay."""
    return RunConfig(start_delay_seconds=0, environment_url_template="http://{domain}.dev.test.com")


@pytest.fixture
def build_server() -> AsyncMock:
    """Build server mock with no builds, no queue and no changes."""
    server = AsyncMock(spec=BuildServer)
    server.url_to_send = "https://teamcity.test.com"
    server.list_running_builds.return_value = []
    server.list_queued_builds.return_value = []
    server.list_branch_builds.return_value = []
    server.get_build.return_value = None
    server.list_changes.return_value = []
    return server


@pytest.fixture
def tracker() -> AsyncMock:
    """Issue tracker mock returning no issues."""
    mock = AsyncMock(spec=IssueTracker)
    mock.search_issues.return_value = []
    return mock


@pytest.fixture
def build_params() -> RunParameters:
    """Parameters of a build run for a single branch."""
    return RunParameters(
        operation=OperationType.BUILD,
        on="dev",
        build_type="Deploy_Dev",
        properties=BuildParameters("env.buildgate.").add("domain", "fn-101"),
    )


@pytest.fixture
def check_params() -> RunParameters:
    """Parameters of a smoke check run with tracker sync enabled."""
    return RunParameters(
        operation=OperationType.SMOKE,
        on="dev",
        build_type="Deploy_Dev",
        branch="fn-101",
        domain="fn-101",
        branch_url="http://fn-101.dev.test.com",
        check_on="ci",
        check_build_id="4711",
        tracker_sync=TrackerSync.ALWAYS,
        properties=BuildParameters("env.buildgate.").add("domain", "fn-101"),
    )


def _make_build(
    build_id: int,
    branch: str | None = None,
    build_type: str = "Deploy_Dev",
    status: BuildStatus = BuildStatus.SUCCESS,
    status_text: str = "",
    last_change: int | None = None,
) -> Build:
    """Build factory used across engine tests."""
    return Build(
        id=build_id,
        build_type_id=build_type,
        status=status,
        status_text=status_text,
        branch_name=branch,
        last_changes=[Change(last_change)] if last_change is not None else [],
    )


def _make_issue(key: str, branch: str | None = None) -> Issue:
    return Issue(key=key, branch=branch)


@pytest.fixture
def make_build():
    """Factory for Build models."""
    return _make_build


@pytest.fixture
def make_issue():
    """Factory for Issue models."""
    return _make_issue
