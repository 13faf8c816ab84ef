"""Domain models for the release workflow.

Key Models:
    - Issue: Tracker issue with its branch field
    - Build: Build server build (running, queued or finished)
    - Change: Version-control change known to the build server
    - BuildOutcome: Classification of a checked build
    - BuildParameters: Properties sent with an enqueued build

Enums:
    - OperationType: Kind of run (build, unit, smoke)
    - TrackerSync: Tracker synchronization flag (always, never, unset)
    - BuildStatus: Terminal build status
    - OutcomeKind: Success, failure or not found
"""

from buildgate.models.domain import (
    Build,
    BuildOutcome,
    BuildParameters,
    BuildStatus,
    Change,
    Issue,
    OperationType,
    OutcomeKind,
    TrackerSync,
)

__all__ = [
    "Build",
    "BuildOutcome",
    "BuildParameters",
    "BuildStatus",
    "Change",
    "Issue",
    "OperationType",
    "OutcomeKind",
    "TrackerSync",
]
