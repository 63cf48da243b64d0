"""In-memory provisioning repository for testing."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from wikihub.core.exceptions import ConflictRetryable
from wikihub.core.provisioning.types import (
    AuthenticationProvider,
    Team,
    TeamDomain,
    User,
    UserAuthentication,
    UserRole,
)


class InMemoryProvisioningRepository:
    """Provisioning repository backed by dictionaries.

    This repository is useful for:
    - Unit testing provisioning without a database
    - Running the API locally without PostgreSQL

    It enforces the same uniqueness constraints as the database schema,
    and ``transaction()`` restores every table when the block raises.

    Attributes:
        teams: Teams by ID.
        team_domains: Allow-listed domains by ID.
        authentication_providers: Providers by ID.
        users: Users by ID.
        user_authentications: External identity links by ID.
    """

    def __init__(self) -> None:
        """Initialize empty tables."""
        self.teams: dict[UUID, Team] = {}
        self.team_domains: dict[UUID, TeamDomain] = {}
        self.authentication_providers: dict[UUID, AuthenticationProvider] = {}
        self.users: dict[UUID, User] = {}
        self.user_authentications: dict[UUID, UserAuthentication] = {}

    def _tables(self) -> tuple[dict[UUID, Any], ...]:
        return (
            self.teams,
            self.team_domains,
            self.authentication_providers,
            self.users,
            self.user_authentications,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryProvisioningRepository]:
        """Snapshot all tables and restore them if the block raises."""
        snapshot = [dict(table) for table in self._tables()]
        try:
            yield self
        except BaseException:
            for table, saved in zip(self._tables(), snapshot, strict=True):
                table.clear()
                table.update(saved)
            raise

    # Seeding helpers

    def add_team(
        self,
        name: str = "Team",
        subdomain: str | None = None,
        domain: str | None = None,
        avatar_url: str | None = None,
    ) -> Team:
        """Insert a team directly, bypassing provisioning."""
        if subdomain and any(t.subdomain == subdomain for t in self.teams.values()):
            raise ConflictRetryable(constraint="uq_teams_subdomain")
        team = Team(
            id=uuid4(),
            name=name,
            subdomain=subdomain,
            domain=domain,
            avatar_url=avatar_url,
            created_at=datetime.now(UTC),
        )
        self.teams[team.id] = team
        return team

    def add_team_domain(
        self,
        team_id: UUID,
        name: str,
        created_by_id: UUID | None = None,
    ) -> TeamDomain:
        """Allow-list a login domain for a team."""
        domain = TeamDomain(
            id=uuid4(),
            team_id=team_id,
            name=name.lower(),
            created_by_id=created_by_id,
            created_at=datetime.now(UTC),
        )
        self.team_domains[domain.id] = domain
        return domain

    def providers_for_team(self, team_id: UUID) -> list[AuthenticationProvider]:
        """All providers attached to a team."""
        return [p for p in self.authentication_providers.values() if p.team_id == team_id]

    # Team operations
    async def get_team(self, team_id: UUID) -> Team | None:
        """Get team by ID."""
        return self.teams.get(team_id)

    async def get_team_by_subdomain(self, subdomain: str) -> Team | None:
        """Get team by subdomain."""
        return next((t for t in self.teams.values() if t.subdomain == subdomain), None)

    async def get_first_team(self) -> Team | None:
        """Get the oldest team in the installation."""
        return min(self.teams.values(), key=lambda t: t.created_at, default=None)

    async def count_teams(self) -> int:
        """Count all teams."""
        return len(self.teams)

    async def create_team(
        self,
        name: str,
        subdomain: str | None = None,
        avatar_url: str | None = None,
    ) -> Team:
        """Create a new team."""
        return self.add_team(name=name, subdomain=subdomain, avatar_url=avatar_url)

    # Team domain operations
    async def get_team_domains(self, team_id: UUID) -> list[TeamDomain]:
        """Get the allow-listed login domains of a team."""
        return sorted(
            (d for d in self.team_domains.values() if d.team_id == team_id),
            key=lambda d: d.name,
        )

    async def find_team_by_domain(self, domain: str) -> Team | None:
        """Get the team that allow-lists a login domain."""
        for team_domain in self.team_domains.values():
            if team_domain.name == domain.lower():
                return self.teams.get(team_domain.team_id)
        return None

    # Authentication provider operations
    async def find_authentication_provider(
        self,
        name: str,
        provider_id: str,
        team_id: UUID | None = None,
    ) -> AuthenticationProvider | None:
        """Find a provider by name and provider ID, optionally scoped to a team."""
        matches = [
            p
            for p in self.authentication_providers.values()
            if p.name == name
            and p.provider_id == provider_id
            and (team_id is None or p.team_id == team_id)
        ]
        return min(matches, key=lambda p: p.created_at, default=None)

    async def create_authentication_provider(
        self,
        team_id: UUID,
        name: str,
        provider_id: str,
    ) -> AuthenticationProvider:
        """Attach a new authentication provider to a team."""
        if await self.find_authentication_provider(name, provider_id, team_id):
            raise ConflictRetryable(constraint="uq_authentication_providers_team_id")
        provider = AuthenticationProvider(
            id=uuid4(),
            team_id=team_id,
            name=name,
            provider_id=provider_id,
            created_at=datetime.now(UTC),
        )
        self.authentication_providers[provider.id] = provider
        return provider

    # User operations
    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        return self.users.get(user_id)

    async def get_invited_user(self, team_id: UUID, email: str) -> User | None:
        """Get a user on the team with this email who has never signed in."""
        signed_in = {a.user_id for a in self.user_authentications.values()}
        for user in self.users.values():
            if (
                user.team_id == team_id
                and user.email
                and user.email.lower() == email.lower()
                and user.id not in signed_in
            ):
                return user
        return None

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
        user = User(
            id=uuid4(),
            team_id=team_id,
            name=name,
            email=email,
            avatar_url=avatar_url,
            role=role,
            last_active_ip=last_active_ip,
            created_at=datetime.now(UTC),
        )
        self.users[user.id] = user
        return user

    async def update_user(
        self,
        user_id: UUID,
        name: str | None = None,
        avatar_url: str | None = None,
        last_active_ip: str | None = None,
    ) -> User | None:
        """Update mutable user fields."""
        user = self.users.get(user_id)
        if user is None:
            return None
        changes = {
            "name": name,
            "avatar_url": avatar_url,
            "last_active_ip": last_active_ip,
        }
        user = user.model_copy(update={k: v for k, v in changes.items() if v is not None})
        self.users[user_id] = user
        return user

    # User authentication operations
    async def get_user_authentication(
        self,
        authentication_provider_id: UUID,
        provider_id: str,
    ) -> UserAuthentication | None:
        """Get the link between an external user identity and a local user."""
        return next(
            (
                a
                for a in self.user_authentications.values()
                if a.authentication_provider_id == authentication_provider_id
                and a.provider_id == provider_id
            ),
            None,
        )

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
        if await self.get_user_authentication(authentication_provider_id, provider_id):
            raise ConflictRetryable(constraint="uq_user_authentications_authentication_provider_id")
        authentication = UserAuthentication(
            id=uuid4(),
            user_id=user_id,
            authentication_provider_id=authentication_provider_id,
            provider_id=provider_id,
            scopes=list(scopes),
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            created_at=datetime.now(UTC),
        )
        self.user_authentications[authentication.id] = authentication
        return authentication

    async def update_user_authentication(
        self,
        user_authentication_id: UUID,
        scopes: list[str],
        access_token: str | None = None,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserAuthentication | None:
        """Refresh the stored grant of an external identity."""
        authentication = self.user_authentications.get(user_authentication_id)
        if authentication is None:
            return None
        update: dict[str, Any] = {"scopes": list(scopes), "expires_at": expires_at}
        if access_token is not None:
            update["access_token"] = access_token
        if refresh_token is not None:
            update["refresh_token"] = refresh_token
        authentication = authentication.model_copy(update=update)
        self.user_authentications[user_authentication_id] = authentication
        return authentication
