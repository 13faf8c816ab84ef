"""
Invocation parameters.

A run is described by ``key=value`` tokens, for example::

    type=unit on=dev buildtype=Deploy_Dev branch=refs/heads/fn-101
    domain=refs/heads/feature/dev-fn-101 checkon=ci checkbuildid=4711 jira=true

Keys are case-insensitive. ``notstartbuilds`` takes a comma-separated list of
operation types.
"""

from dataclasses import dataclass, field

import structlog

from buildgate.branch_key import normalize, normalize_for_display
from buildgate.config.settings import RunConfig
from buildgate.exceptions import InvalidParameterError
from buildgate.models.domain import BuildParameters, OperationType, TrackerSync

log = structlog.get_logger(__name__)

KNOWN_KEYS = ("type", "on", "buildtype", "branch", "domain", "checkon", "checkbuildid", "jira", "notstartbuilds")


@dataclass
class RunParameters:
    """Validated parameters of one run."""

    operation: OperationType
    on: str
    build_type: str
    branch: str | None = None
    domain: str | None = None
    branch_url: str | None = None
    check_on: str | None = None
    check_build_id: str | None = None
    tracker_sync: TrackerSync = TrackerSync.UNSET
    not_start_builds: list[OperationType] = field(default_factory=list)
    raw_not_start_builds: str = ""
    properties: BuildParameters = field(default_factory=BuildParameters)

    @property
    def start_suppressed(self) -> bool:
        return self.operation in self.not_start_builds


def parse_operation(value: str) -> OperationType:
    try:
        return OperationType(value.strip().lower())
    except ValueError:
        raise InvalidParameterError(f"Unknown operation type: {value!r}") from None


def parse_tracker_sync(value: str) -> TrackerSync:
    normalized = value.strip().lower()
    if not normalized:
        return TrackerSync.UNSET
    if normalized == "true":
        return TrackerSync.ALWAYS
    if normalized == "false":
        return TrackerSync.NEVER
    raise InvalidParameterError(f"jira must be 'true' or 'false', got {value!r}")


def parse_parameters(tokens: list[str], run_config: RunConfig | None = None) -> RunParameters:
    """Parse and validate ``key=value`` tokens.

    Raises:
        InvalidParameterError: If a token is malformed, a value is invalid, or
            a required parameter is missing
    """
    run_config = run_config or RunConfig()
    values: dict[str, str] = {}

    for token in tokens:
        parts = token.split("=")
        if len(parts) != 2:
            raise InvalidParameterError(
                f"Invalid parameter: {token!r}. Expected 'key1=value1[,value1b,...] key2=value2[,value2b,...]'"
            )
        key, value = parts[0].strip().lower(), parts[1]
        if key not in KNOWN_KEYS:
            log.warning("unknown_parameter_ignored", key=key)
            continue
        values[key] = value

    if not values.get("type") or not values.get("on") or not values.get("buildtype"):
        raise InvalidParameterError("type, on and buildtype must always be given")

    operation = parse_operation(values["type"])
    domain = normalize_for_display(normalize(values.get("domain")), run_config.ticket_pattern)
    raw_not_start = values.get("notstartbuilds", "")

    params = RunParameters(
        operation=operation,
        on=values["on"],
        build_type=values["buildtype"],
        branch=normalize(values.get("branch")),
        domain=domain,
        branch_url=run_config.environment_url(domain),
        check_on=values.get("checkon") or None,
        check_build_id=values.get("checkbuildid") or None,
        tracker_sync=parse_tracker_sync(values.get("jira", "")),
        not_start_builds=[parse_operation(item) for item in raw_not_start.split(",") if item.strip()],
        raw_not_start_builds=raw_not_start,
    )

    if operation is not OperationType.BUILD and not (
        params.branch and params.domain and params.check_on and params.check_build_id
    ):
        raise InvalidParameterError(
            "branch, domain, checkon and checkbuildid must be given when type is not 'build'"
        )

    sync_flag = None if params.tracker_sync is TrackerSync.UNSET else str(params.tracker_sync.enabled).lower()
    params.properties = (
        BuildParameters(run_config.property_prefix)
        .add("branchurl", params.branch_url)
        .add("domain", params.domain)
        .add("jira", sync_flag)
        .add("notstartbuilds", raw_not_start)
    )
    return params
