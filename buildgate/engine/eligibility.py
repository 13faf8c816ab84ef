"""
Build eligibility filtering.

Decides which candidate branches may get a new build. A branch is dropped when
a build for it is already running, already queued, or when nothing changed on
it since its most recent successful build of the target build type. The three
checks run in this order and each narrows the set the next one sees.
"""

from collections.abc import Iterable

import structlog

from buildgate.branch_key import normalize
from buildgate.models.domain import Build, BuildStatus
from buildgate.providers.base import BuildServer

log = structlog.get_logger(__name__)


class BuildEligibilityFilter:
    """Remove branches that should not be built right now.

    Remote failures are not caught: any error aborts the whole filtering pass.

    Example:
        >>> eligibility = BuildEligibilityFilter(teamcity)
        >>> branches = await eligibility.filter(["fn-101", "fn-102"], "Deploy_Dev", ["Deploy_Dev"])
    """

    def __init__(self, build_server: BuildServer) -> None:
        self.build_server = build_server

    async def filter(
        self,
        candidates: Iterable[str],
        build_type_id: str,
        watched_build_types: Iterable[str] = (),
    ) -> list[str]:
        """Return the candidates that are eligible for a new build.

        Args:
            candidates: BranchKeys to consider; duplicates are collapsed
            build_type_id: Build configuration that would be started
            watched_build_types: Build types whose running or queued builds
                block a branch; empty means every build type blocks

        Returns:
            Eligible BranchKeys in their original order
        """
        branches: list[str] = []
        for candidate in candidates:
            key = normalize(candidate)
            if key and key not in branches:
                branches.append(key)

        watched = {t for t in watched_build_types if t}

        running = await self.build_server.list_running_builds()
        self._remove_active(branches, running, watched, "running")

        queued = await self.build_server.list_queued_builds()
        self._remove_active(branches, queued, watched, "queued")

        unchanged = []
        for branch in branches:
            if not await self.has_unbuilt_changes(build_type_id, branch):
                unchanged.append(branch)
        for branch in unchanged:
            branches.remove(branch)
            log.info("branch_removed_no_changes", branch=branch, build_type=build_type_id)

        return branches

    async def has_unbuilt_changes(self, build_type_id: str, branch: str) -> bool:
        """Check whether the branch changed since its last successful build.

        A branch that never built successfully always counts as changed. The
        most recent success is the one with the highest build id.
        """
        builds = await self.build_server.list_branch_builds(build_type_id, branch)
        successes = [b for b in builds if b.status is BuildStatus.SUCCESS]
        if not successes:
            log.debug("no_successful_build", branch=branch, build_type=build_type_id)
            return True

        latest = max(successes, key=lambda b: b.id)
        detail = await self.build_server.get_build(latest.id)
        since_change_id = detail.last_change_id if detail is not None else None

        changes = await self.build_server.list_changes(build_type_id, branch, since_change_id)
        log.debug(
            "unbuilt_changes_checked",
            branch=branch,
            build_type=build_type_id,
            last_success=latest.id,
            since_change=since_change_id,
            changes=len(changes),
        )
        return bool(changes)

    @staticmethod
    def _remove_active(branches: list[str], builds: list[Build], watched: set[str], where: str) -> None:
        removals: dict[str, Build] = {}
        for build in builds:
            key = normalize(build.branch_name)
            if key in branches and key not in removals and (not watched or build.build_type_id in watched):
                removals[key] = build

        for key, build in removals.items():
            branches.remove(key)
            log.info(f"branch_removed_{where}", branch=key, build_type=build.build_type_id, build_id=build.id)
