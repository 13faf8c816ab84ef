"""Decision logic of the release workflow.

Key Components:
    - BuildEligibilityFilter: Drop running, queued and unchanged branches
    - BuildEnqueuer: Queue builds for the remaining branches
    - BuildOutcomeEvaluator: Classify a finished build
    - IssueStatusSynchronizer: Move tracker issues through the gates
    - ReleaseOrchestrator: Select and sequence the build or check path
"""
