"""Custom exception hierarchy for buildgate.

Every error raised by the release workflow derives from ``BuildGateError`` so
the CLI boundary can report it with a single except clause. Nothing in the
engine recovers locally: errors abort the current run and are reported by
``buildgate.main``.

Exception Hierarchy:
    BuildGateError (base)
    ├── ConfigurationError
    ├── InvalidParameterError
    ├── UnknownInstanceError
    └── ExternalServiceError
        ├── RemoteTransportError
        └── RemoteStatusError

Example Usage:
    >>> from buildgate.exceptions import ConfigurationError
    >>> try:
    ...     load_config(path)
    ... except FileNotFoundError as e:
    ...     raise ConfigurationError(f"Config file not found: {path}") from e
"""

ISSUE_TRACKER = "issue tracker"
BUILD_SERVER = "build server"


class BuildGateError(Exception):
    """Base exception for all buildgate errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(BuildGateError):
    """Configuration is missing or invalid.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Unset environment variable referenced from the file
        - Missing required configuration fields
    """

    pass


class InvalidParameterError(BuildGateError):
    """Invocation parameters are malformed or contradictory."""

    pass


class UnknownInstanceError(BuildGateError):
    """A named tracker or build server instance is not configured.

    Attributes:
        kind: Instance kind ("tracker" or "build server")
        name: The requested instance name
        known: Names that are configured for this kind
    """

    def __init__(self, kind: str, name: str, known: list[str] | None = None) -> None:
        self.kind = kind
        self.name = name
        self.known = sorted(known or [])

        message = f"Unknown {kind} instance: {name!r}"
        if self.known:
            message = f"{message} (configured: {', '.join(self.known)})"
        super().__init__(message)


class ExternalServiceError(BuildGateError):
    """Communication with the issue tracker or the build server failed.

    Attributes:
        service: Which side failed (``ISSUE_TRACKER`` or ``BUILD_SERVER``)
    """

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service[:1].upper()}{service[1:]}: {message}")


class RemoteTransportError(ExternalServiceError):
    """Network or protocol level failure before a response was received."""

    def __init__(self, service: str, detail: str) -> None:
        self.detail = detail
        super().__init__(service, f"transport level error: {detail}")


class RemoteStatusError(ExternalServiceError):
    """The remote service answered with a non-success status.

    Attributes:
        status_code: HTTP status code
        description: Reason phrase sent with the status
        response_text: Response body, passed through for the operator
    """

    def __init__(
        self,
        service: str,
        status_code: int,
        description: str = "",
        response_text: str = "",
    ) -> None:
        self.status_code = status_code
        self.description = description
        self.response_text = response_text

        message = f"returned wrong status: {status_code} {description}".rstrip()
        if response_text:
            message = f"{message}\n{response_text}"
        super().__init__(service, message)
