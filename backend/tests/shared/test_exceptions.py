"""Tests for shared/exceptions.py."""

import pytest

from shared.exceptions import (
    TripsplitError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    RateLimitError,
    ExternalServiceError,
)


class TestTripsplitError:
    def test_stores_message(self):
        """TripsplitError should store message."""
        error = TripsplitError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"

    def test_default_code_is_class_name(self):
        error = TripsplitError("Test error")
        assert error.code == "TripsplitError"

    def test_custom_code_and_details(self):
        error = TripsplitError("Test error", code="CUSTOM", details={"key": "value"})
        assert error.code == "CUSTOM"
        assert error.details == {"key": "value"}

    def test_default_details_not_shared(self):
        """Each instance should get its own details dict."""
        first = TripsplitError("a")
        second = TripsplitError("b")
        first.details["x"] = 1
        assert second.details == {}

    def test_to_dict(self):
        error = TripsplitError("Test error", code="TEST_ERROR", details={"key": "value"})
        assert error.to_dict() == {
            "error": "TEST_ERROR",
            "message": "Test error",
            "details": {"key": "value"},
        }


class TestErrorCategories:
    @pytest.mark.parametrize(
        "error_class",
        [
            NotFoundError,
            ValidationError,
            AuthenticationError,
            AuthorizationError,
            ConflictError,
            RateLimitError,
        ],
    )
    def test_categories_inherit_base(self, error_class):
        error = error_class("boom")
        assert isinstance(error, TripsplitError)
        assert error.code == error_class.__name__


class TestExternalServiceError:
    def test_stores_service_in_details(self):
        error = ExternalServiceError("Connection failed", service="socket")
        assert error.service == "socket"
        assert error.to_dict()["details"]["service"] == "socket"

    def test_preserves_other_details(self):
        error = ExternalServiceError(
            "Connection failed",
            service="socket",
            details={"status_code": 500},
        )
        assert error.details == {"status_code": 500, "service": "socket"}
