"""
Issue status synchronization.

Moves tracker issues through the test and release gates after a build was
checked. Issues are selected by query predicates rather than stored state:

    awaiting test, Fixed, branch = X      -> advance to test  (or fail back)
    awaiting release, Fixed, branch = X   -> advance to release (or fail back)
    awaiting test, not Fixed              -> advance to test with default URL
    awaiting release, not Fixed           -> advance to release with default URL

Fixed issues carry the branch they were developed on, so they get the branch
environment URL on success and a failure comment with a build link on
failure. Issues that are not Fixed have no branch of their own and are always
advanced with the configured default environment URL.

There is no rollback: a failing transition aborts the pass and transitions
already applied stay applied.
"""

from dataclasses import dataclass

import structlog

from buildgate.branch_key import normalize
from buildgate.config.settings import TrackerInstanceConfig
from buildgate.models.domain import Issue
from buildgate.providers.base import IssueTracker

log = structlog.get_logger(__name__)

FAILURE_COMMENT = "Build failed. Error message: {reason}\n{url}/viewLog.html?buildId={build_id}"


@dataclass
class SyncSummary:
    """How many issues were moved in each bucket."""

    branch: str
    branch_url: str | None
    failed: bool
    test_fixed: int = 0
    release_fixed: int = 0
    test_unresolved: int = 0
    release_unresolved: int = 0

    @property
    def total(self) -> int:
        return self.test_fixed + self.release_fixed + self.test_unresolved + self.release_unresolved

    def lines(self) -> list[str]:
        fixed_target = "back to development" if self.failed else "to {gate} (Fixed)"
        return [
            f"Issue transitions for branch {self.branch} ({self.branch_url or '-'}):",
            f"{self.test_fixed} issue(s) moved {fixed_target.format(gate='test')}",
            f"{self.test_unresolved} issue(s) moved to test (not Fixed)",
            f"{self.release_fixed} issue(s) moved {fixed_target.format(gate='release')}",
            f"{self.release_unresolved} issue(s) moved to release (not Fixed)",
        ]


class IssueStatusSynchronizer:
    """Apply gate transitions for a branch after its build was checked.

    Example:
        >>> sync = IssueStatusSynchronizer(jira, settings.tracker("default"))
        >>> summary = await sync.synchronize("fn-101", "http://fn-101", None, teamcity.url_to_send, "4711")
    """

    def __init__(self, tracker: IssueTracker, config: TrackerInstanceConfig) -> None:
        self.tracker = tracker
        self.config = config

    async def waiting_branches(self) -> list[str]:
        """Branches of all issues waiting at the test or release gate.

        Issues without a branch value are skipped; the result keeps query
        order without duplicates.
        """
        issues = await self.tracker.search_issues(self.config.test_status)
        issues += await self.tracker.search_issues(self.config.release_status)

        branches: list[str] = []
        for issue in issues:
            key = normalize(issue.branch)
            if key and key not in branches:
                branches.append(key)

        log.info("waiting_branches_found", issues=len(issues), branches=len(branches))
        return branches

    async def synchronize(
        self,
        branch: str,
        branch_url: str | None,
        failure_reason: str | None,
        build_server_url: str,
        build_id: int | str,
    ) -> SyncSummary:
        """Transition the issues of ``branch`` according to the build outcome.

        Args:
            branch: BranchKey of the checked build
            branch_url: Environment URL of the branch
            failure_reason: Failure text, or None when the build succeeded
            build_server_url: Public URL of the server that ran the build
            build_id: Id of the checked build, used for the failure link

        Returns:
            Counts per bucket
        """
        config = self.config
        awaiting_test = await self.tracker.search_issues(config.test_status, fixed=True, branch=branch)
        awaiting_release = await self.tracker.search_issues(config.release_status, fixed=True, branch=branch)

        if failure_reason is None:
            environment = {"environment": branch_url}
            await self._transition_all(awaiting_test, config.transition_test_id, "test", environment)
            await self._transition_all(awaiting_release, config.transition_release_id, "release", environment)
        else:
            comment = FAILURE_COMMENT.format(reason=failure_reason, url=build_server_url.rstrip("/"), build_id=build_id)
            await self._fail_all(awaiting_test, config.transition_failed_test_id, comment)
            await self._fail_all(awaiting_release, config.transition_failed_release_id, comment)

        unresolved_test = await self.tracker.search_issues(config.test_status, fixed=False)
        unresolved_release = await self.tracker.search_issues(config.release_status, fixed=False)

        default_environment = {"environment": config.default_environment_url}
        await self._transition_all(unresolved_test, config.transition_test_id, "test", default_environment)
        await self._transition_all(unresolved_release, config.transition_release_id, "release", default_environment)

        summary = SyncSummary(
            branch=branch,
            branch_url=branch_url,
            failed=failure_reason is not None,
            test_fixed=len(awaiting_test),
            release_fixed=len(awaiting_release),
            test_unresolved=len(unresolved_test),
            release_unresolved=len(unresolved_release),
        )
        log.info(
            "issue_sync_summary",
            branch=branch,
            branch_url=branch_url,
            failed=summary.failed,
            test_fixed=summary.test_fixed,
            release_fixed=summary.release_fixed,
            test_unresolved=summary.test_unresolved,
            release_unresolved=summary.release_unresolved,
        )
        return summary

    async def _transition_all(self, issues: list[Issue], transition_id: str, gate: str, fields: dict) -> None:
        for issue in issues:
            await self.tracker.transition_issue(issue, transition_id, fields)
            log.info("issue_transitioned", issue=issue.key, gate=gate, environment=fields.get("environment"))

    async def _fail_all(self, issues: list[Issue], transition_id: str, comment: str) -> None:
        for issue in issues:
            await self.tracker.transition_issue(issue, transition_id)
            await self.tracker.add_comment(issue, comment)
            log.info("issue_failed_back", issue=issue.key, transition=transition_id)
