"""Classify the outcome of a previously started build."""

import structlog

from buildgate.models.domain import BuildOutcome, BuildStatus, OutcomeKind
from buildgate.providers.base import BuildServer

log = structlog.get_logger(__name__)


class BuildOutcomeEvaluator:
    """Turn a build id into success, failure (with a reason) or not found."""

    def __init__(self, build_server: BuildServer) -> None:
        self.build_server = build_server

    async def check(self, build_id: int | str) -> BuildOutcome:
        build = await self.build_server.get_build(build_id)
        if build is None:
            log.warning("checked_build_not_found", build_id=build_id)
            return BuildOutcome(OutcomeKind.NOT_FOUND)

        if build.status is BuildStatus.SUCCESS:
            log.info("checked_build_succeeded", build_id=build_id, build_type=build.build_type_id)
            return BuildOutcome(OutcomeKind.SUCCESS)

        reason = build.status_text or f"Build {build_id} finished with status {build.status.value}"
        log.info("checked_build_failed", build_id=build_id, build_type=build.build_type_id, reason=reason)
        return BuildOutcome(OutcomeKind.FAILURE, reason)

    async def evaluate(self, build_id: int | str) -> str | None:
        """Return the failure reason of the build, or None when it succeeded.

        A build that cannot be found has no reason either; use ``check`` to
        tell it apart from a success.
        """
        outcome = await self.check(build_id)
        return outcome.reason
