"""Provisioning repository protocol for database operations."""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from wikihub.core.provisioning.types import (
    AuthenticationProvider,
    Team,
    TeamDomain,
    User,
    UserAuthentication,
    UserRole,
)


@runtime_checkable
class ProvisioningRepository(Protocol):
    """Protocol for provisioning database operations.

    Implementations enforce the storage-level uniqueness constraints and
    raise ``ConflictRetryable`` when one is violated:

    - ``teams.subdomain``
    - ``authentication_providers (team_id, name, provider_id)``
    - ``user_authentications (authentication_provider_id, provider_id)``
    """

    def transaction(self) -> AbstractAsyncContextManager["ProvisioningRepository"]:
        """Open a transaction and yield a repository bound to it.

        Leaving the block with an exception rolls back every write made
        through the yielded repository.
        """
        ...

    # Team operations
    async def get_team(self, team_id: UUID) -> Team | None:
        """Get team by ID."""
        ...

    async def get_team_by_subdomain(self, subdomain: str) -> Team | None:
        """Get team by subdomain."""
        ...

    async def get_first_team(self) -> Team | None:
        """Get the oldest team in the installation."""
        ...

    async def count_teams(self) -> int:
        """Count all teams."""
        ...

    async def create_team(
        self,
        name: str,
        subdomain: str | None = None,
        avatar_url: str | None = None,
    ) -> Team:
        """Create a new team."""
        ...

    # Team domain operations
    async def get_team_domains(self, team_id: UUID) -> list[TeamDomain]:
        """Get the allow-listed login domains of a team."""
        ...

    async def find_team_by_domain(self, domain: str) -> Team | None:
        """Get the team that allow-lists a login domain."""
        ...

    # Authentication provider operations
    async def find_authentication_provider(
        self,
        name: str,
        provider_id: str,
        team_id: UUID | None = None,
    ) -> AuthenticationProvider | None:
        """Find a provider by name and provider ID, optionally scoped to a team."""
        ...

    async def create_authentication_provider(
        self,
        team_id: UUID,
        name: str,
        provider_id: str,
    ) -> AuthenticationProvider:
        """Attach a new authentication provider to a team."""
        ...

    # User operations
    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        ...

    async def get_invited_user(self, team_id: UUID, email: str) -> User | None:
        """Get a user on the team with this email who has never signed in."""
        ...

    async def create_user(
        self,
        team_id: UUID,
        name: str,
        email: str | None = None,
        avatar_url: str | None = None,
        role: UserRole = UserRole.MEMBER,
        last_active_ip: str | None = None,
    ) -> User:
        """Create a new user."""
        ...

    async def update_user(
        self,
        user_id: UUID,
        name: str | None = None,
        avatar_url: str | None = None,
        last_active_ip: str | None = None,
    ) -> User | None:
        """Update mutable user fields."""
        ...

    # User authentication operations
    async def get_user_authentication(
        self,
        authentication_provider_id: UUID,
        provider_id: str,
    ) -> UserAuthentication | None:
        """Get the link between an external user identity and a local user."""
        ...

    async def create_user_authentication(
        self,
        user_id: UUID,
        authentication_provider_id: UUID,
        provider_id: str,
        scopes: list[str],
        access_token: str | None = None,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserAuthentication:
        """Link an external user identity to a local user."""
        ...

    async def update_user_authentication(
        self,
        user_authentication_id: UUID,
        scopes: list[str],
        access_token: str | None = None,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserAuthentication | None:
        """Refresh the stored grant of an external identity."""
        ...
