"""PostgreSQL implementation of ProvisioningRepository."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import asyncpg
import structlog

from wikihub.adapters.db.app_db import AppDatabase
from wikihub.core.exceptions import ConflictRetryable
from wikihub.core.provisioning.types import (
    AuthenticationProvider,
    Team,
    TeamDomain,
    User,
    UserAuthentication,
    UserRole,
)

if TYPE_CHECKING:
    from asyncpg import Connection

logger = structlog.get_logger()


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


class PostgresProvisioningRepository:
    """PostgreSQL implementation of the provisioning repository.

    Without a connection every call takes its own connection from the
    pool. ``transaction()`` yields a repository bound to one connection
    so that all of its calls share a single transaction.
    """

    def __init__(self, db: AppDatabase, conn: "Connection | None" = None) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
            conn: Connection with an open transaction, if any.
        """
        self._db = db
        self._conn = conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["PostgresProvisioningRepository"]:
        """Run the block in a transaction (a savepoint when already in one)."""
        if self._conn is not None:
            async with self._conn.transaction():
                yield self
            return

        async with self._db.transaction() as conn:
            yield PostgresProvisioningRepository(self._db, conn)

    async def _fetch_one(self, query: str, *args: Any) -> dict[str, Any] | None:
        if self._conn is None:
            return await self._db.fetch_one(query, *args)
        row = await self._conn.fetchrow(query, *args)
        return dict(row) if row else None

    async def _fetch_all(self, query: str, *args: Any) -> list[dict[str, Any]]:
        if self._conn is None:
            return await self._db.fetch_all(query, *args)
        rows = await self._conn.fetch(query, *args)
        return [dict(row) for row in rows]

    async def _insert(self, query: str, *args: Any) -> dict[str, Any]:
        """Run an INSERT ... RETURNING, translating unique violations.

        Inside a transaction the insert runs in a savepoint, so a conflict
        does not abort the surrounding transaction and the caller may retry.
        """
        try:
            if self._conn is None:
                row = await self._db.fetch_one(query, *args)
            else:
                async with self._conn.transaction():
                    record = await self._conn.fetchrow(query, *args)
                    row = dict(record) if record else None
        except asyncpg.UniqueViolationError as e:
            logger.warning("unique_violation", constraint=e.constraint_name)
            raise ConflictRetryable(str(e), constraint=e.constraint_name) from None

        if row is None:
            raise RuntimeError("INSERT RETURNING returned no row")
        return row

    def _row_to_team(self, row: dict[str, Any]) -> Team:
        """Convert database row to Team model."""
        return Team(
            id=row["id"],
            name=row["name"],
            subdomain=row.get("subdomain"),
            domain=row.get("domain"),
            avatar_url=row.get("avatar_url"),
            created_at=row["created_at"],
        )

    def _row_to_team_domain(self, row: dict[str, Any]) -> TeamDomain:
        """Convert database row to TeamDomain model."""
        return TeamDomain(
            id=row["id"],
            team_id=row["team_id"],
            name=row["name"],
            created_by_id=row.get("created_by_id"),
            created_at=row["created_at"],
        )

    def _row_to_provider(self, row: dict[str, Any]) -> AuthenticationProvider:
        """Convert database row to AuthenticationProvider model."""
        return AuthenticationProvider(
            id=row["id"],
            team_id=row["team_id"],
            name=row["name"],
            provider_id=row["provider_id"],
            enabled=row.get("enabled", True),
            created_at=row["created_at"],
        )

    def _row_to_user(self, row: dict[str, Any]) -> User:
        """Convert database row to User model."""
        return User(
            id=row["id"],
            team_id=row["team_id"],
            name=row["name"],
            email=row.get("email"),
            avatar_url=row.get("avatar_url"),
            role=UserRole(row.get("role") or UserRole.MEMBER.value),
            is_active=row.get("is_active", True),
            last_active_ip=row.get("last_active_ip"),
            created_at=row["created_at"],
        )

    def _row_to_user_authentication(self, row: dict[str, Any]) -> UserAuthentication:
        """Convert database row to UserAuthentication model."""
        return UserAuthentication(
            id=row["id"],
            user_id=row["user_id"],
            authentication_provider_id=row["authentication_provider_id"],
            provider_id=row["provider_id"],
            scopes=_load_json(row.get("scopes")) or [],
            access_token=row.get("access_token"),
            refresh_token=row.get("refresh_token"),
            expires_at=row.get("expires_at"),
            created_at=row["created_at"],
        )

    # Team operations
    async def get_team(self, team_id: UUID) -> Team | None:
        """Get team by ID."""
        row = await self._fetch_one("SELECT * FROM teams WHERE id = $1", team_id)
        return self._row_to_team(row) if row else None

    async def get_team_by_subdomain(self, subdomain: str) -> Team | None:
        """Get team by subdomain."""
        row = await self._fetch_one("SELECT * FROM teams WHERE subdomain = $1", subdomain)
        return self._row_to_team(row) if row else None

    async def get_first_team(self) -> Team | None:
        """Get the oldest team in the installation."""
        row = await self._fetch_one("SELECT * FROM teams ORDER BY created_at ASC LIMIT 1")
        return self._row_to_team(row) if row else None

    async def count_teams(self) -> int:
        """Count all teams."""
        row = await self._fetch_one("SELECT COUNT(*) AS count FROM teams")
        return int(row["count"]) if row else 0

    async def create_team(
        self,
        name: str,
        subdomain: str | None = None,
        avatar_url: str | None = None,
    ) -> Team:
        """Create a new team."""
        row = await self._insert(
            """
            INSERT INTO teams (name, subdomain, avatar_url)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            name,
            subdomain,
            avatar_url,
        )
        return self._row_to_team(row)

    # Team domain operations
    async def get_team_domains(self, team_id: UUID) -> list[TeamDomain]:
        """Get the allow-listed login domains of a team."""
        rows = await self._fetch_all(
            "SELECT * FROM team_domains WHERE team_id = $1 ORDER BY name",
            team_id,
        )
        return [self._row_to_team_domain(row) for row in rows]

    async def find_team_by_domain(self, domain: str) -> Team | None:
        """Get the team that allow-lists a login domain."""
        row = await self._fetch_one(
            """
            SELECT t.* FROM teams t
            JOIN team_domains td ON td.team_id = t.id
            WHERE td.name = $1
            ORDER BY t.created_at ASC
            LIMIT 1
            """,
            domain.lower(),
        )
        return self._row_to_team(row) if row else None

    # Authentication provider operations
    async def find_authentication_provider(
        self,
        name: str,
        provider_id: str,
        team_id: UUID | None = None,
    ) -> AuthenticationProvider | None:
        """Find a provider by name and provider ID, optionally scoped to a team."""
        if team_id is None:
            row = await self._fetch_one(
                """
                SELECT * FROM authentication_providers
                WHERE name = $1 AND provider_id = $2
                ORDER BY created_at ASC
                LIMIT 1
                """,
                name,
                provider_id,
            )
        else:
            row = await self._fetch_one(
                """
                SELECT * FROM authentication_providers
                WHERE name = $1 AND provider_id = $2 AND team_id = $3
                """,
                name,
                provider_id,
                team_id,
            )
        return self._row_to_provider(row) if row else None

    async def create_authentication_provider(
        self,
        team_id: UUID,
        name: str,
        provider_id: str,
    ) -> AuthenticationProvider:
        """Attach a new authentication provider to a team."""
        row = await self._insert(
            """
            INSERT INTO authentication_providers (team_id, name, provider_id, enabled)
            VALUES ($1, $2, $3, true)
            RETURNING *
            """,
            team_id,
            name,
            provider_id,
        )
        return self._row_to_provider(row)

    # User operations
    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        row = await self._fetch_one("SELECT * FROM users WHERE id = $1", user_id)
        return self._row_to_user(row) if row else None

    async def get_invited_user(self, team_id: UUID, email: str) -> User | None:
        """Get a user on the team with this email who has never signed in."""
        row = await self._fetch_one(
            """
            SELECT u.* FROM users u
            WHERE u.team_id = $1
              AND lower(u.email) = lower($2)
              AND NOT EXISTS (
                  SELECT 1 FROM user_authentications ua WHERE ua.user_id = u.id
              )
            LIMIT 1
            """,
            team_id,
            email,
        )
        return self._row_to_user(row) if row else None

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
        row = await self._insert(
            """
            INSERT INTO users (team_id, name, email, avatar_url, role, last_active_ip)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
            """,
            team_id,
            name,
            email,
            avatar_url,
            role.value,
            last_active_ip,
        )
        return self._row_to_user(row)

    async def update_user(
        self,
        user_id: UUID,
        name: str | None = None,
        avatar_url: str | None = None,
        last_active_ip: str | None = None,
    ) -> User | None:
        """Update mutable user fields."""
        updates = []
        params: list[Any] = []
        param_idx = 1

        if name is not None:
            updates.append(f"name = ${param_idx}")
            params.append(name)
            param_idx += 1

        if avatar_url is not None:
            updates.append(f"avatar_url = ${param_idx}")
            params.append(avatar_url)
            param_idx += 1

        if last_active_ip is not None:
            updates.append(f"last_active_ip = ${param_idx}")
            params.append(last_active_ip)
            param_idx += 1

        if not updates:
            return await self.get_user(user_id)

        updates.append(f"updated_at = ${param_idx}")
        params.append(datetime.now(UTC))
        param_idx += 1

        params.append(user_id)
        query = f"""
            UPDATE users SET {", ".join(updates)}
            WHERE id = ${param_idx}
            RETURNING *
        """
        row = await self._fetch_one(query, *params)
        return self._row_to_user(row) if row else None

    # User authentication operations
    async def get_user_authentication(
        self,
        authentication_provider_id: UUID,
        provider_id: str,
    ) -> UserAuthentication | None:
        """Get the link between an external user identity and a local user."""
        row = await self._fetch_one(
            """
            SELECT * FROM user_authentications
            WHERE authentication_provider_id = $1 AND provider_id = $2
            """,
            authentication_provider_id,
            provider_id,
        )
        return self._row_to_user_authentication(row) if row else None

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
        row = await self._insert(
            """
            INSERT INTO user_authentications
            (user_id, authentication_provider_id, provider_id, scopes,
             access_token, refresh_token, expires_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING *
            """,
            user_id,
            authentication_provider_id,
            provider_id,
            json.dumps(scopes),
            access_token,
            refresh_token,
            expires_at,
        )
        return self._row_to_user_authentication(row)

    async def update_user_authentication(
        self,
        user_authentication_id: UUID,
        scopes: list[str],
        access_token: str | None = None,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserAuthentication | None:
        """Refresh the stored grant of an external identity."""
        row = await self._fetch_one(
            """
            UPDATE user_authentications
            SET scopes = $1,
                access_token = COALESCE($2, access_token),
                refresh_token = COALESCE($3, refresh_token),
                expires_at = $4,
                updated_at = NOW()
            WHERE id = $5
            RETURNING *
            """,
            json.dumps(scopes),
            access_token,
            refresh_token,
            expires_at,
            user_authentication_id,
        )
        return self._row_to_user_authentication(row) if row else None
