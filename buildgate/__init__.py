"""buildgate: TeamCity build orchestration and Jira status synchronization."""

__version__ = "0.3.0"
