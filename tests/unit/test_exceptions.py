"""Tests for buildgate/exceptions.py."""

import pytest

from buildgate.exceptions import (
    BUILD_SERVER,
    ISSUE_TRACKER,
    BuildGateError,
    ConfigurationError,
    ExternalServiceError,
    InvalidParameterError,
    RemoteStatusError,
    RemoteTransportError,
    UnknownInstanceError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("x"),
            InvalidParameterError("x"),
            UnknownInstanceError("tracker", "x"),
            RemoteTransportError(BUILD_SERVER, "x"),
            RemoteStatusError(ISSUE_TRACKER, 500),
        ],
    )
    def test_all_derive_from_base(self, error):
        assert isinstance(error, BuildGateError)
        assert error.message == str(error)

    def test_remote_errors_are_external(self):
        assert issubclass(RemoteTransportError, ExternalServiceError)
        assert issubclass(RemoteStatusError, ExternalServiceError)


class TestMessages:
    def test_status_error_prefixed_with_side(self):
        error = RemoteStatusError(ISSUE_TRACKER, 400, "Bad Request", '{"errorMessages":["no transition"]}')

        assert error.message == (
            'Issue tracker: returned wrong status: 400 Bad Request\n{"errorMessages":["no transition"]}'
        )

    def test_status_error_without_description(self):
        assert RemoteStatusError(BUILD_SERVER, 502).message == "Build server: returned wrong status: 502"

    def test_transport_error(self):
        error = RemoteTransportError(BUILD_SERVER, "timed out")

        assert error.message == "Build server: transport level error: timed out"
        assert error.detail == "timed out"

    def test_unknown_instance_lists_known(self):
        error = UnknownInstanceError("build server", "prod", ["dev", "ci"])

        assert error.message == "Unknown build server instance: 'prod' (configured: ci, dev)"
