"""Core domain - Pure business logic, persistence behind protocols."""

from .exceptions import (
    AuthenticationError,
    AuthenticationProviderDisabled,
    ConflictRetryable,
    DomainNotAllowed,
    TeamCreationDenied,
    TeamNotFoundError,
    ValidationError,
    WikihubError,
)

__all__ = [
    "WikihubError",
    "ValidationError",
    "TeamCreationDenied",
    "DomainNotAllowed",
    "ConflictRetryable",
    "TeamNotFoundError",
    "AuthenticationProviderDisabled",
    "AuthenticationError",
]
