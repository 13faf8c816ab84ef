"""TeamCity provider implementation using direct REST API calls."""

from typing import Any

import structlog

from buildgate.config.settings import BuildServerInstanceConfig
from buildgate.exceptions import BUILD_SERVER
from buildgate.models.domain import Build, BuildStatus, Change
from buildgate.providers.base import BuildServer
from buildgate.providers.http import HTTPConnectionPool

log = structlog.get_logger(__name__)

REST_ROOT = "/httpAuth/app/rest"
QUEUED_BUILD_FIELDS = "count,build(id,buildTypeId,branchName,state,status,statusText)"


class TeamCityRestProvider(BuildServer):
    """TeamCity implementation using direct REST API calls."""

    def __init__(
        self,
        config: BuildServerInstanceConfig,
        pool: HTTPConnectionPool | None = None,
    ) -> None:
        """Initialize TeamCity provider.

        Args:
            config: Build server instance settings
            pool: HTTP client to use; created from ``config`` when omitted
        """
        self.config = config
        self.base_url = config.url
        self.url_to_send = config.url_to_send or config.url
        self._pool = pool or HTTPConnectionPool(
            base_url=config.url,
            service=BUILD_SERVER,
            auth=(config.user, config.password.get_secret_value()),
            timeout=config.timeout,
        )

    async def close(self) -> None:
        await self._pool.close()

    async def __aenter__(self) -> "TeamCityRestProvider":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def list_running_builds(self) -> list[Build]:
        log.debug("list_running_builds", base_url=self.base_url)
        response = await self._pool.get(
            f"{REST_ROOT}/builds",
            params={"locator": "running:true,branch:default:any"},
        )
        return self._parse_builds(response.json())

    async def list_queued_builds(self) -> list[Build]:
        log.debug("list_queued_builds", base_url=self.base_url)
        response = await self._pool.get(f"{REST_ROOT}/buildQueue", params={"fields": QUEUED_BUILD_FIELDS})
        return self._parse_builds(response.json())

    async def list_branch_builds(self, build_type_id: str, branch: str) -> list[Build]:
        log.debug("list_branch_builds", build_type=build_type_id, branch=branch)
        response = await self._pool.get(
            f"{REST_ROOT}/builds",
            params={"locator": f"branch:name:{branch},buildType:{build_type_id}"},
        )
        return self._parse_builds(response.json())

    async def get_build(self, build_id: int | str) -> Build | None:
        log.debug("get_build", build_id=build_id)
        response = await self._pool.get(f"{REST_ROOT}/builds/id:{build_id}", allow_statuses=(404,))
        if response.status_code == 404:
            log.warning("build_not_found", build_id=build_id, base_url=self.base_url)
            return None
        return self._parse_build(response.json())

    async def list_changes(self, build_type_id: str, branch: str, since_change_id: int | None = None) -> list[Change]:
        log.debug("list_changes", build_type=build_type_id, branch=branch, since_change=since_change_id)
        params = {"locator": f"branch:name:{branch},buildType:{build_type_id}"}
        if since_change_id is not None:
            params["sinceChange"] = f"id:{since_change_id}"

        response = await self._pool.get(f"{REST_ROOT}/changes", params=params)
        return self._parse_changes(response.json())

    async def enqueue_build(self, build_type_id: str, branch: str, properties: list[dict[str, str]]) -> None:
        log.debug("enqueue_build", build_type=build_type_id, branch=branch, properties=len(properties))
        body = {
            "buildType": {"id": build_type_id},
            "branchName": branch,
            "properties": {
                "count": len(properties),
                "property": properties,
            },
        }
        await self._pool.post(f"{REST_ROOT}/buildQueue", json=body)

    def _parse_builds(self, data: dict[str, Any]) -> list[Build]:
        return [self._parse_build(item) for item in (data or {}).get("build") or []]

    def _parse_build(self, data: dict[str, Any]) -> Build:
        """Convert TeamCity build JSON to a Build model."""
        last_changes = self._parse_changes(data.get("lastChanges") or {})
        return Build(
            id=int(data["id"]),
            build_type_id=data.get("buildTypeId"),
            status=BuildStatus.parse(data.get("status")),
            status_text=data.get("statusText") or "",
            branch_name=data.get("branchName"),
            state=data.get("state"),
            last_changes=last_changes,
        )

    def _parse_changes(self, data: dict[str, Any]) -> list[Change]:
        return [Change(id=int(item["id"])) for item in (data or {}).get("change") or []]
