"""
Domain models for the release workflow.

These dataclasses are the normalized internal representation of what the issue
tracker and the build server return. Providers convert raw JSON into them; the
engine works exclusively with these types and never sees provider payloads.

Example:
    Converting a TeamCity build payload::

        build = Build(
            id=payload["id"],
            build_type_id=payload["buildTypeId"],
            status=BuildStatus.parse(payload.get("status")),
            branch_name=payload.get("branchName"),
            status_text=payload.get("statusText", ""),
        )
"""

from dataclasses import dataclass, field
from enum import Enum


class OperationType(str, Enum):
    """Kind of run requested on the command line."""

    BUILD = "build"
    """Start builds for waiting branches."""

    UNIT = "unit"
    """Check a unit-test build and react to its outcome."""

    SMOKE = "smoke"
    """Check a smoke-test build; always syncs the tracker when enabled."""


class TrackerSync(str, Enum):
    """Whether issue statuses are synchronized after a check run.

    The invocation flag is optional; an absent flag is ``UNSET`` and behaves
    like ``NEVER``.
    """

    ALWAYS = "always"
    NEVER = "never"
    UNSET = "unset"

    @property
    def enabled(self) -> bool:
        return self is TrackerSync.ALWAYS


class BuildStatus(str, Enum):
    """Terminal status of a build as reported by the build server."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> "BuildStatus":
        """Map a raw status string, tolerating case and unexpected values."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN


class OutcomeKind(str, Enum):
    """Classification of a checked build."""

    SUCCESS = "success"
    FAILURE = "failure"
    NOT_FOUND = "not_found"


@dataclass
class Issue:
    """A tracker issue as seen by the synchronizer."""

    key: str
    """Issue key, e.g. ``PROJ-123``."""

    status: str | None = None
    resolution: str | None = None
    branch: str | None = None
    """Value of the branch custom field (a BranchKey), if any."""


@dataclass
class Change:
    """A version-control change known to the build server."""

    id: int


@dataclass
class Build:
    """A build (running, queued or finished) on the build server."""

    id: int
    build_type_id: str | None = None
    status: BuildStatus = BuildStatus.UNKNOWN
    status_text: str = ""
    branch_name: str | None = None
    state: str | None = None
    last_changes: list[Change] = field(default_factory=list)

    @property
    def last_change_id(self) -> int | None:
        """Id of the newest change included in the build, if reported."""
        if not self.last_changes:
            return None
        return self.last_changes[0].id


@dataclass
class BuildOutcome:
    """Result of checking a previously started build."""

    kind: OutcomeKind
    reason: str | None = None
    """Failure text passed verbatim to the tracker; None unless failed."""

    @property
    def failed(self) -> bool:
        return self.kind is OutcomeKind.FAILURE

    @property
    def known(self) -> bool:
        """True when the checked build was found and finished."""
        return self.kind is not OutcomeKind.NOT_FOUND


class BuildParameters:
    """Named properties sent along with an enqueued build.

    Pairs with an empty name or value are dropped silently. Names are emitted
    with ``prefix`` in front, e.g. ``env.buildgate.branchurl``.
    """

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix
        self._values: dict[str, str] = {}

    def add(self, name: str | None, value: str | None) -> "BuildParameters":
        if not name or not value:
            return self
        self._values[name] = value
        return self

    def as_properties(self) -> list[dict[str, str]]:
        return [{"name": f"{self.prefix}{name}", "value": value} for name, value in self._values.items()]

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __repr__(self) -> str:
        return f"BuildParameters(prefix={self.prefix!r}, values={self._values!r})"
