"""Jira provider implementation using the REST API v2."""

from typing import Any

import structlog

from buildgate.config.settings import TrackerInstanceConfig
from buildgate.exceptions import ISSUE_TRACKER
from buildgate.models.domain import Issue
from buildgate.providers.base import IssueTracker
from buildgate.providers.http import HTTPConnectionPool

log = structlog.get_logger(__name__)

API_ROOT = "/rest/api/2"


def quote_jql(value: str) -> str:
    """Render a value as a double-quoted JQL string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class JiraRestProvider(IssueTracker):
    """Jira implementation using direct REST API calls.

    Issues are always scoped to the configured project. The branch of an issue
    lives in a custom field whose id comes from the tracker configuration.
    """

    def __init__(
        self,
        config: TrackerInstanceConfig,
        pool: HTTPConnectionPool | None = None,
    ) -> None:
        """Initialize Jira provider.

        Args:
            config: Tracker instance settings
            pool: HTTP client to use; created from ``config`` when omitted
        """
        self.config = config
        self.base_url = config.url.rstrip("/")
        self._pool = pool or HTTPConnectionPool(
            base_url=self.base_url,
            service=ISSUE_TRACKER,
            auth=(config.user, config.password.get_secret_value()),
        )

    async def close(self) -> None:
        await self._pool.close()

    async def __aenter__(self) -> "JiraRestProvider":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def build_jql(self, status: str, fixed: bool | None = None, branch: str | None = None) -> str:
        """Build the JQL predicate for a gate query."""
        clauses = [
            f"project = {quote_jql(self.config.project_key)}",
            f"status = {quote_jql(status)}",
        ]
        if fixed is True:
            clauses.append("resolution = Fixed")
        elif fixed is False:
            clauses.append("resolution != Fixed")
        if branch is not None:
            clauses.append(f"{self.config.branch_field_jql} = {quote_jql(branch)}")
        return " and ".join(clauses)

    async def search_issues(
        self,
        status: str,
        fixed: bool | None = None,
        branch: str | None = None,
    ) -> list[Issue]:
        jql = self.build_jql(status, fixed, branch)
        log.debug("search_issues", jql=jql)

        issues: list[Issue] = []
        start_at = 0
        while True:
            response = await self._pool.post(
                f"{API_ROOT}/search",
                json={
                    "jql": jql,
                    "startAt": start_at,
                    "maxResults": self.config.page_size,
                    "fields": ["status", "resolution", self.config.branch_field_name],
                },
            )
            data = response.json()
            page = data.get("issues") or []
            issues.extend(self._parse_issue(item) for item in page)

            start_at += len(page)
            if not page or start_at >= int(data.get("total", 0)):
                break

        return issues

    async def transition_issue(self, issue: Issue, transition_id: str, fields: dict[str, Any] | None = None) -> None:
        log.debug("transition_issue", issue=issue.key, transition=transition_id)

        body: dict[str, Any] = {"transition": {"id": transition_id}}
        if fields:
            body["fields"] = fields
        await self._pool.post(f"{API_ROOT}/issue/{issue.key}/transitions", json=body)

    async def add_comment(self, issue: Issue, body: str) -> None:
        log.debug("add_comment", issue=issue.key)
        await self._pool.post(f"{API_ROOT}/issue/{issue.key}/comment", json={"body": body})

    def _parse_issue(self, data: dict[str, Any]) -> Issue:
        """Convert Jira issue JSON to an Issue model."""
        fields = data.get("fields") or {}
        status = fields.get("status") or {}
        resolution = fields.get("resolution") or {}
        branch = fields.get(self.config.branch_field_name)
        return Issue(
            key=data["key"],
            status=status.get("name"),
            resolution=resolution.get("name"),
            branch=branch if isinstance(branch, str) and branch else None,
        )
