"""Unit tests for exceptions."""

from __future__ import annotations

import pytest

from wikihub.core.exceptions import (
    AuthenticationError,
    AuthenticationProviderDisabled,
    ConflictRetryable,
    DomainNotAllowed,
    TeamCreationDenied,
    TeamNotFoundError,
    ValidationError,
    WikihubError,
)


class TestWikihubError:
    """Tests for WikihubError."""

    def test_is_exception(self) -> None:
        """Test that WikihubError is an Exception."""
        assert issubclass(WikihubError, Exception)

    def test_can_raise(self) -> None:
        """Test that WikihubError can be raised."""
        with pytest.raises(WikihubError):
            raise WikihubError("Test error")

    def test_default_message_from_docstring(self) -> None:
        """Test that the message defaults to the docstring summary."""
        assert str(TeamCreationDenied()) == (
            "This installation does not allow another team to be created."
        )

    def test_explicit_message(self) -> None:
        """Test that an explicit message wins."""
        assert str(DomainNotAllowed("nope")) == "nope"


@pytest.mark.parametrize(
    ("error_cls", "notice"),
    [
        (ValidationError, "invalid_request"),
        (TeamCreationDenied, "maximum-teams"),
        (DomainNotAllowed, "domain-not-allowed"),
        (ConflictRetryable, "conflict"),
        (TeamNotFoundError, "team-not-found"),
        (AuthenticationProviderDisabled, "auth-provider-disabled"),
        (AuthenticationError, "authentication-required"),
    ],
)
def test_notice_codes(error_cls: type[WikihubError], notice: str) -> None:
    """Every error carries its redirect notice and is a WikihubError."""
    assert issubclass(error_cls, WikihubError)
    assert error_cls.notice == notice
    assert error_cls().notice == notice


class TestConflictRetryable:
    """Tests for ConflictRetryable."""

    def test_carries_constraint(self) -> None:
        """Test that the violated constraint is kept."""
        error = ConflictRetryable("duplicate", constraint="uq_teams_subdomain")

        assert error.constraint == "uq_teams_subdomain"
        assert "duplicate" in str(error)

    def test_constraint_optional(self) -> None:
        """Test that the constraint defaults to None."""
        assert ConflictRetryable().constraint is None
