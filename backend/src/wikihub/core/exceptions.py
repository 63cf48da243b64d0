"""Domain-specific exceptions.

All exceptions in the wikihub system inherit from WikihubError,
making it easy to catch all system errors while still being able
to handle specific error types.

Every error carries a short ``notice`` code. The HTTP layer puts this
code into redirect query strings so that no internal detail reaches
the browser.
"""

from __future__ import annotations


class WikihubError(Exception):
    """Base exception for all wikihub errors.

    Attributes:
        notice: Short machine-readable code safe to show to users.
    """

    notice = "internal_error"

    def __init__(self, message: str | None = None) -> None:
        """Initialize WikihubError.

        Args:
            message: Error description. Defaults to the class docstring summary.
        """
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        """First line of the class docstring."""
        return (cls.__doc__ or cls.__name__).strip().splitlines()[0]


class ValidationError(WikihubError):
    """Required input is missing or malformed.

    Raised for requests such as an OAuth callback carrying neither a
    ``code`` nor an ``error`` parameter. Surfaced as a redirect, never
    as a server error.
    """

    notice = "invalid_request"


class TeamCreationDenied(WikihubError):
    """This installation does not allow another team to be created.

    Raised in single-tenant deployments when a team already exists and
    the authentication could not be matched to it. Not retryable.
    """

    notice = "maximum-teams"


class DomainNotAllowed(WikihubError):
    """The login domain is not allowed for this team.

    Raised when a specific team is expected (explicit team id, or the
    single team of a self-hosted installation) and the supplied domain
    is not on its allow-list. No team or user is created.
    """

    notice = "domain-not-allowed"


class ConflictRetryable(WikihubError):
    """A uniqueness constraint was violated while creating a record.

    Raised by repositories when a concurrent request committed the same
    unique key first. Callers may re-run their availability check and
    retry once.

    Attributes:
        constraint: Name of the violated constraint, if known.
    """

    notice = "conflict"

    def __init__(self, message: str | None = None, constraint: str | None = None) -> None:
        """Initialize ConflictRetryable.

        Args:
            message: Error description.
            constraint: Name of the violated constraint.
        """
        super().__init__(message)
        self.constraint = constraint


class TeamNotFoundError(WikihubError):
    """The requested team does not exist."""

    notice = "team-not-found"


class AuthenticationProviderDisabled(WikihubError):
    """This authentication provider has been disabled for the team."""

    notice = "auth-provider-disabled"


class AuthenticationError(WikihubError):
    """The user could not be signed in."""

    notice = "authentication-required"
