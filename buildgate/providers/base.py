"""
Abstract base classes for the two remote collaborators.

The engine talks to an issue tracker and a build server only through these
interfaces, so tests can substitute mocks and another tracker or CI server
can be plugged in without touching the decision logic.
"""

from abc import ABC, abstractmethod
from typing import Any

from buildgate.models.domain import Build, Change, Issue


class IssueTracker(ABC):
    """Issue tracker operations needed by the release workflow.

    All methods are async to support non-blocking I/O with HTTP clients.
    """

    @abstractmethod
    async def search_issues(
        self,
        status: str,
        fixed: bool | None = None,
        branch: str | None = None,
    ) -> list[Issue]:
        """Query issues of the configured project.

        Args:
            status: Workflow status (gate) name the issues must be in
            fixed: True for resolution = Fixed, False for resolution != Fixed,
                None for any resolution
            branch: Only issues whose branch field equals this BranchKey

        Returns:
            Matching issues in tracker order.

        Raises:
            ExternalServiceError: If the tracker request fails.
        """
        pass

    @abstractmethod
    async def transition_issue(self, issue: Issue, transition_id: str, fields: dict[str, Any] | None = None) -> None:
        """Apply a workflow transition, optionally setting fields.

        Raises:
            ExternalServiceError: If the transition is rejected or the request fails.
        """
        pass

    @abstractmethod
    async def add_comment(self, issue: Issue, body: str) -> None:
        """Add a comment to an issue.

        Raises:
            ExternalServiceError: If the request fails.
        """
        pass


class BuildServer(ABC):
    """Build server operations needed by the release workflow."""

    url_to_send: str
    """Public URL of the server, used to build links posted elsewhere."""

    @abstractmethod
    async def list_running_builds(self) -> list[Build]:
        """Builds currently running on any branch."""
        pass

    @abstractmethod
    async def list_queued_builds(self) -> list[Build]:
        """Builds waiting in the queue."""
        pass

    @abstractmethod
    async def list_branch_builds(self, build_type_id: str, branch: str) -> list[Build]:
        """Builds of one build type on one branch, in no guaranteed order."""
        pass

    @abstractmethod
    async def get_build(self, build_id: int | str) -> Build | None:
        """Fetch build detail including its last change.

        Returns:
            The build, or None if the server does not know the id.
        """
        pass

    @abstractmethod
    async def list_changes(self, build_type_id: str, branch: str, since_change_id: int | None = None) -> list[Change]:
        """Changes for a branch and build type, optionally only after a change id."""
        pass

    @abstractmethod
    async def enqueue_build(self, build_type_id: str, branch: str, properties: list[dict[str, str]]) -> None:
        """Put a build of ``build_type_id`` for ``branch`` into the queue."""
        pass
