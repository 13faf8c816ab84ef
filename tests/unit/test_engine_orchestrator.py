"""Tests for buildgate/engine/orchestrator.py."""

from unittest.mock import AsyncMock, patch

import pytest

from buildgate.engine.orchestrator import ReleaseOrchestrator
from buildgate.exceptions import InvalidParameterError
from buildgate.models.domain import BuildStatus, Issue, OperationType, OutcomeKind, TrackerSync
from buildgate.providers.base import BuildServer


@pytest.fixture
def check_server(make_build) -> AsyncMock:
    server = AsyncMock(spec=BuildServer)
    server.url_to_send = "https://ci.test.com"
    server.get_build.return_value = make_build(4711, "fn-101")
    return server


@pytest.fixture
def orchestrator(run_config, tracker, tracker_config, build_server, build_server_config, check_server):
    return ReleaseOrchestrator(
        run_config,
        tracker,
        tracker_config,
        build_server,
        build_server_config,
        check_server=check_server,
    )


class TestBuildPath:
    @pytest.mark.asyncio
    async def test_end_to_end_queued_branch_skipped(self, orchestrator, build_server, build_params, make_build):
        build_server.list_queued_builds.return_value = [make_build(9, "a", "Deploy_Dev")]
        build_server.list_branch_builds.return_value = []

        with patch.object(orchestrator.synchronizer, "waiting_branches", AsyncMock(return_value=["a", "b"])):
            result = await orchestrator.run(build_params)

        assert result.eligible == ["b"]
        assert result.enqueued == ["b"]
        build_server.enqueue_build.assert_awaited_once()
        assert build_server.enqueue_build.await_args.args[:2] == ("Deploy_Dev", "b")

    @pytest.mark.asyncio
    async def test_named_branch_skips_tracker(self, orchestrator, tracker, build_server, build_params):
        build_params.branch = "fn-101"

        result = await orchestrator.run(build_params)

        tracker.search_issues.assert_not_awaited()
        assert result.candidates == ["fn-101"]
        assert result.enqueued == ["fn-101"]

    @pytest.mark.asyncio
    async def test_candidates_from_waiting_issues(self, orchestrator, tracker, build_server, build_params):
        async def search_issues(status, fixed=None, branch=None):
            return [Issue("P-1", branch="fn-1")] if status == "Awaiting test" else [Issue("P-2", branch="fn-2")]

        tracker.search_issues.side_effect = search_issues

        result = await orchestrator.run(build_params)

        assert result.candidates == ["fn-1", "fn-2"]
        assert sorted(call.args[1] for call in build_server.enqueue_build.await_args_list) == ["fn-1", "fn-2"]

    @pytest.mark.asyncio
    async def test_suppressed_does_nothing(self, orchestrator, tracker, build_server, build_params):
        build_params.not_start_builds = [OperationType.BUILD]

        result = await orchestrator.run(build_params)

        assert result.skipped
        tracker.search_issues.assert_not_awaited()
        build_server.list_running_builds.assert_not_awaited()
        build_server.enqueue_build.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_waits_before_starting(self, orchestrator, build_params):
        orchestrator.run_config.start_delay_seconds = 5
        build_params.branch = "fn-101"

        with patch("buildgate.engine.orchestrator.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await orchestrator.run(build_params)

        sleep.assert_awaited_once_with(5)

    @pytest.mark.asyncio
    async def test_ignored_branch(self, orchestrator, build_server, build_params):
        build_params.branch = "hotfix-123"

        result = await orchestrator.run(build_params)

        assert result.eligible == ["hotfix-123"]
        assert result.enqueued == []
        build_server.enqueue_build.assert_not_awaited()


class TestCheckPath:
    @pytest.mark.asyncio
    async def test_success_syncs_and_does_not_start(self, orchestrator, tracker, build_server, check_params):
        result = await orchestrator.run(check_params)

        assert result.outcome.kind is OutcomeKind.SUCCESS
        build_server.enqueue_build.assert_not_awaited()
        assert result.sync is not None
        assert not result.sync.failed

    @pytest.mark.asyncio
    async def test_failure_starts_build_and_syncs(
        self, orchestrator, tracker, build_server, check_server, check_params, make_build
    ):
        check_server.get_build.return_value = make_build(4711, "fn-101", status=BuildStatus.FAILURE, status_text="OOM")
        failing = Issue("PROJ-1", branch="fn-101")

        async def search_issues(status, fixed=None, branch=None):
            return [failing] if (status, fixed, branch) == ("Awaiting test", True, "fn-101") else []

        tracker.search_issues.side_effect = search_issues

        result = await orchestrator.run(check_params)

        build_server.enqueue_build.assert_awaited_once()
        assert build_server.enqueue_build.await_args.args[:2] == ("Deploy_Dev", "fn-101")
        tracker.transition_issue.assert_awaited_once_with(failing, "41")
        comment = tracker.add_comment.await_args.args[1]
        assert "OOM" in comment
        assert "https://ci.test.com/viewLog.html?buildId=4711" in comment
        assert result.sync.failed

    @pytest.mark.asyncio
    async def test_failure_with_start_suppressed(
        self, orchestrator, build_server, check_server, check_params, make_build
    ):
        check_server.get_build.return_value = make_build(4711, "fn-101", status=BuildStatus.FAILURE, status_text="x")
        check_params.not_start_builds = [OperationType.SMOKE]

        result = await orchestrator.run(check_params)

        build_server.enqueue_build.assert_not_awaited()
        assert result.sync is not None

    @pytest.mark.asyncio
    async def test_not_found_starts_build(self, orchestrator, build_server, check_server, check_params):
        check_server.get_build.return_value = None

        result = await orchestrator.run(check_params)

        assert result.outcome.kind is OutcomeKind.NOT_FOUND
        build_server.enqueue_build.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_found_smoke_still_syncs(self, orchestrator, check_server, check_params):
        check_server.get_build.return_value = None

        result = await orchestrator.run(check_params)

        assert result.sync is not None
        assert not result.sync.failed

    @pytest.mark.asyncio
    async def test_not_found_unit_does_not_sync(self, orchestrator, tracker, check_server, check_params):
        check_server.get_build.return_value = None
        check_params.operation = OperationType.UNIT

        result = await orchestrator.run(check_params)

        assert result.sync is None
        tracker.search_issues.assert_not_awaited()

    @pytest.mark.parametrize("sync", [TrackerSync.NEVER, TrackerSync.UNSET])
    @pytest.mark.asyncio
    async def test_sync_disabled(self, orchestrator, tracker, check_server, check_params, make_build, sync):
        check_server.get_build.return_value = make_build(4711, "fn-101", status=BuildStatus.FAILURE, status_text="x")
        check_params.tracker_sync = sync

        result = await orchestrator.run(check_params)

        assert result.sync is None
        tracker.search_issues.assert_not_awaited()
        tracker.transition_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_checks_on_check_server(self, orchestrator, build_server, check_server, check_params):
        await orchestrator.run(check_params)

        check_server.get_build.assert_awaited_once_with("4711")
        build_server.get_build.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_check_server(self, run_config, tracker, tracker_config, build_server, build_server_config, check_params):
        orchestrator = ReleaseOrchestrator(run_config, tracker, tracker_config, build_server, build_server_config)

        with pytest.raises(InvalidParameterError):
            await orchestrator.run(check_params)


class TestRunResultLines:
    @pytest.mark.asyncio
    async def test_build_summary(self, orchestrator, build_params):
        build_params.branch = "fn-101"

        result = await orchestrator.run(build_params)

        assert result.lines() == [
            "1 candidate branch(es), 1 eligible, 1 enqueued",
            "Branch fn-101 added to the queue",
        ]

    @pytest.mark.asyncio
    async def test_skipped_summary(self, orchestrator, build_params):
        build_params.not_start_builds = [OperationType.BUILD]

        result = await orchestrator.run(build_params)

        assert "notstartbuilds" in result.lines()[0]
