"""
Release orchestrator.

Selects one of two control paths from the operation type of a run:

Build path (``type=build``):
    1. Do nothing if ``build`` is listed in ``notstartbuilds``
    2. Wait a short delay so upstream systems settle
    3. Candidates: the named branch, or every branch waiting at a gate
    4. Eligibility filter, then enqueue

Check path (``type=unit`` / ``type=smoke``):
    1. Check the previously started build on the check build server
    2. On failure, or when the build cannot be found, start a new build for
       the branch on the primary build server unless starting is suppressed
    3. With tracker sync enabled, synchronize issue statuses when the build
       had an outcome, and always for smoke runs

Each run reads everything it needs from the two services; nothing is kept
between runs.
"""

import asyncio
from dataclasses import dataclass, field

import structlog

from buildgate.cli.params import RunParameters
from buildgate.config.settings import BuildServerInstanceConfig, RunConfig, TrackerInstanceConfig
from buildgate.engine.eligibility import BuildEligibilityFilter
from buildgate.engine.enqueuer import BuildEnqueuer
from buildgate.engine.outcome import BuildOutcomeEvaluator
from buildgate.engine.synchronizer import IssueStatusSynchronizer, SyncSummary
from buildgate.exceptions import InvalidParameterError
from buildgate.models.domain import BuildOutcome, OperationType, OutcomeKind
from buildgate.providers.base import BuildServer, IssueTracker

log = structlog.get_logger(__name__)


@dataclass
class RunResult:
    """What a run did, for the operator summary."""

    operation: OperationType
    skipped: bool = False
    candidates: list[str] = field(default_factory=list)
    eligible: list[str] = field(default_factory=list)
    enqueued: list[str] = field(default_factory=list)
    outcome: BuildOutcome | None = None
    sync: SyncSummary | None = None

    def lines(self) -> list[str]:
        if self.skipped:
            return [f"Starting '{self.operation.value}' builds is disabled by notstartbuilds; nothing to do"]

        lines = []
        if self.outcome is not None:
            text = self.outcome.kind.value
            if self.outcome.reason:
                text = f"{text}: {self.outcome.reason}"
            lines.append(f"Checked build: {text}")
        if self.candidates:
            lines.append(
                f"{len(self.candidates)} candidate branch(es), {len(self.eligible)} eligible, "
                f"{len(self.enqueued)} enqueued"
            )
            lines.extend(f"Branch {branch} added to the queue" for branch in self.enqueued)
        if self.sync is not None:
            lines.extend(self.sync.lines())
        return lines


class ReleaseOrchestrator:
    """Sequence eligibility, enqueueing, outcome checks and tracker sync.

    Attributes:
        build_server: Server that builds are started on (``on=``)
        check_server: Server that the checked build ran on (``checkon=``)
    """

    def __init__(
        self,
        run_config: RunConfig,
        tracker: IssueTracker,
        tracker_config: TrackerInstanceConfig,
        build_server: BuildServer,
        build_server_config: BuildServerInstanceConfig,
        check_server: BuildServer | None = None,
    ) -> None:
        self.run_config = run_config
        self.build_server = build_server
        self.build_server_config = build_server_config
        self.check_server = check_server
        self.eligibility = BuildEligibilityFilter(build_server)
        self.enqueuer = BuildEnqueuer(build_server)
        self.synchronizer = IssueStatusSynchronizer(tracker, tracker_config)

    async def run(self, params: RunParameters) -> RunResult:
        if params.operation is OperationType.BUILD:
            return await self._run_build(params)
        return await self._run_check(params)

    async def start_builds(self, candidates: list[str], params: RunParameters, result: RunResult) -> None:
        """Filter candidates and enqueue builds for the eligible ones."""
        result.candidates = list(candidates)
        result.eligible = await self.eligibility.filter(
            candidates,
            params.build_type,
            self.build_server_config.watched_build_types,
        )
        result.enqueued = await self.enqueuer.enqueue(
            result.eligible,
            self.build_server_config.branch_prefixes_to_ignore,
            params.build_type,
            params.properties,
        )

    async def _run_build(self, params: RunParameters) -> RunResult:
        result = RunResult(operation=params.operation)
        if params.start_suppressed:
            log.info("build_start_suppressed", operation=params.operation.value)
            result.skipped = True
            return result

        if self.run_config.start_delay_seconds:
            await asyncio.sleep(self.run_config.start_delay_seconds)

        if params.branch:
            candidates = [params.branch]
        else:
            candidates = await self.synchronizer.waiting_branches()

        await self.start_builds(candidates, params, result)
        return result

    async def _run_check(self, params: RunParameters) -> RunResult:
        if self.check_server is None or not params.branch or not params.check_build_id:
            raise InvalidParameterError("A check run needs checkon, checkbuildid and branch")

        result = RunResult(operation=params.operation)
        outcome = await BuildOutcomeEvaluator(self.check_server).check(params.check_build_id)
        result.outcome = outcome

        if outcome.kind in (OutcomeKind.FAILURE, OutcomeKind.NOT_FOUND):
            if params.start_suppressed:
                log.info("build_start_suppressed", operation=params.operation.value, branch=params.branch)
            else:
                await self.start_builds([params.branch], params, result)

        if not params.tracker_sync.enabled:
            log.info("tracker_sync_disabled", tracker_sync=params.tracker_sync.value)
        elif outcome.known or params.operation is OperationType.SMOKE:
            result.sync = await self.synchronizer.synchronize(
                params.branch,
                params.branch_url,
                outcome.reason,
                self.check_server.url_to_send,
                params.check_build_id,
            )
        else:
            log.info("tracker_sync_skipped", reason="checked build has no outcome", build_id=params.check_build_id)

        return result
