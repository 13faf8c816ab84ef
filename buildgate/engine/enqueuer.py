"""Submit builds for eligible branches."""

import asyncio
from collections.abc import Iterable

import structlog

from buildgate.models.domain import BuildParameters
from buildgate.providers.base import BuildServer

log = structlog.get_logger(__name__)


def is_ignored(branch: str, ignore_prefixes: Iterable[str]) -> bool:
    """True if the branch starts with any non-blank ignore prefix (case-sensitive)."""
    return any(branch.startswith(prefix.strip()) for prefix in ignore_prefixes if prefix.strip())


class BuildEnqueuer:
    """Queue one build per branch that is not on the ignore list.

    Requests for different branches are independent: they run concurrently,
    and a failing request does not cancel the others. After all of them have
    finished the first failure is re-raised.
    """

    def __init__(self, build_server: BuildServer) -> None:
        self.build_server = build_server

    async def enqueue(
        self,
        candidates: Iterable[str],
        ignore_prefixes: Iterable[str],
        build_type_id: str,
        parameters: BuildParameters,
    ) -> list[str]:
        """Enqueue builds and return the branches that were queued.

        Raises:
            ExternalServiceError: If any enqueue request failed
        """
        prefixes = list(ignore_prefixes)
        branches: list[str] = []
        for branch in candidates:
            if is_ignored(branch, prefixes):
                log.info("branch_ignored", branch=branch, build_type=build_type_id)
            else:
                branches.append(branch)

        properties = parameters.as_properties()
        results = await asyncio.gather(
            *(self.build_server.enqueue_build(build_type_id, branch, properties) for branch in branches),
            return_exceptions=True,
        )

        queued: list[str] = []
        errors: list[BaseException] = []
        for branch, result in zip(branches, results):
            if isinstance(result, BaseException):
                log.error("build_enqueue_failed", branch=branch, build_type=build_type_id, error=str(result))
                errors.append(result)
            else:
                log.info("build_enqueued", branch=branch, build_type=build_type_id)
                queued.append(branch)

        if errors:
            raise errors[0]
        return queued
