"""Tests for PostgreSQL provisioning repository."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import asyncpg
import pytest

from wikihub.adapters.provisioning.postgres import PostgresProvisioningRepository
from wikihub.core.exceptions import ConflictRetryable
from wikihub.core.provisioning import ProvisioningRepository, UserRole


def _team_row(**overrides):
    row = {
        "id": uuid4(),
        "name": "Acme",
        "subdomain": "acme",
        "domain": None,
        "avatar_url": None,
        "created_at": datetime.now(UTC),
    }
    row.update(overrides)
    return row


class TestPostgresProvisioningRepository:
    """Test PostgresProvisioningRepository implementation."""

    @pytest.fixture
    def mock_db(self) -> MagicMock:
        """Create mock database."""
        return MagicMock()

    @pytest.fixture
    def repo(self, mock_db: MagicMock) -> PostgresProvisioningRepository:
        """Create repository with mock database."""
        return PostgresProvisioningRepository(mock_db)

    def test_implements_protocol(self, repo: PostgresProvisioningRepository) -> None:
        """Repository should implement ProvisioningRepository protocol."""
        assert isinstance(repo, ProvisioningRepository)

    @pytest.mark.asyncio
    async def test_get_team_by_subdomain(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Should return team when found by subdomain."""
        row = _team_row()
        mock_db.fetch_one = AsyncMock(return_value=row)

        result = await repo.get_team_by_subdomain("acme")

        assert result is not None
        assert result.id == row["id"]
        assert result.subdomain == "acme"
        assert mock_db.fetch_one.call_args[0][1] == "acme"

    @pytest.mark.asyncio
    async def test_get_team_not_found(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Should return None when team not found."""
        mock_db.fetch_one = AsyncMock(return_value=None)

        assert await repo.get_team(uuid4()) is None

    @pytest.mark.asyncio
    async def test_count_teams(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Should return the row count."""
        mock_db.fetch_one = AsyncMock(return_value={"count": 3})

        assert await repo.count_teams() == 3

    @pytest.mark.asyncio
    async def test_find_team_by_domain_lowercases(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Domains are matched in lowercase."""
        mock_db.fetch_one = AsyncMock(return_value=_team_row())

        await repo.find_team_by_domain("Example.COM")

        assert mock_db.fetch_one.call_args[0][1] == "example.com"

    @pytest.mark.asyncio
    async def test_find_provider_scoped_to_team(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Passing a team id adds it to the query."""
        team_id = uuid4()
        mock_db.fetch_one = AsyncMock(return_value=None)

        await repo.find_authentication_provider("slack", "T0001", team_id=team_id)

        query, *args = mock_db.fetch_one.call_args[0]
        assert "team_id = $3" in query
        assert args == ["slack", "T0001", team_id]

    @pytest.mark.asyncio
    async def test_create_team_conflict(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """A unique violation becomes ConflictRetryable."""
        error = asyncpg.UniqueViolationError("duplicate key value")
        error.constraint_name = "uq_teams_subdomain"
        mock_db.fetch_one = AsyncMock(side_effect=error)

        with pytest.raises(ConflictRetryable) as exc_info:
            await repo.create_team(name="Acme", subdomain="acme")

        assert exc_info.value.constraint == "uq_teams_subdomain"

    @pytest.mark.asyncio
    async def test_create_user(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Should create user and return it."""
        team_id = uuid4()
        mock_db.fetch_one = AsyncMock(
            return_value={
                "id": uuid4(),
                "team_id": team_id,
                "name": "Jenny",
                "email": "jenny@example.com",
                "avatar_url": None,
                "role": "admin",
                "is_active": True,
                "last_active_ip": "127.0.0.1",
                "created_at": datetime.now(UTC),
            }
        )

        result = await repo.create_user(
            team_id=team_id,
            name="Jenny",
            email="jenny@example.com",
            role=UserRole.ADMIN,
            last_active_ip="127.0.0.1",
        )

        assert result.role == UserRole.ADMIN
        assert "admin" in mock_db.fetch_one.call_args[0]

    @pytest.mark.asyncio
    async def test_update_user_without_changes_reads_user(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """No changes means no UPDATE."""
        mock_db.fetch_one = AsyncMock(return_value=None)

        await repo.update_user(uuid4())

        assert mock_db.fetch_one.call_args[0][0].startswith("SELECT")

    @pytest.mark.asyncio
    async def test_update_user_builds_set_clause(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Only provided fields are updated."""
        mock_db.fetch_one = AsyncMock(return_value=None)

        await repo.update_user(uuid4(), name="New Name")

        query = mock_db.fetch_one.call_args[0][0]
        assert "name = $1" in query
        assert "avatar_url" not in query

    @pytest.mark.asyncio
    async def test_user_authentication_scopes_decoded(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """Scopes stored as JSON text are decoded."""
        mock_db.fetch_one = AsyncMock(
            return_value={
                "id": uuid4(),
                "user_id": uuid4(),
                "authentication_provider_id": uuid4(),
                "provider_id": "U0001",
                "scopes": json.dumps(["identity.basic"]),
                "access_token": "xoxp",
                "refresh_token": None,
                "expires_at": None,
                "created_at": datetime.now(UTC),
            }
        )

        result = await repo.get_user_authentication(uuid4(), "U0001")

        assert result is not None
        assert result.scopes == ["identity.basic"]

    @pytest.mark.asyncio
    async def test_insert_without_returned_row(
        self, repo: PostgresProvisioningRepository, mock_db: MagicMock
    ) -> None:
        """An insert that returns no row is an error, not a silent None."""
        mock_db.fetch_one = AsyncMock(return_value=None)

        with pytest.raises(RuntimeError, match="returned no row"):
            await repo.create_team(name="Acme", subdomain="acme")


class TestPostgresProvisioningTransaction:
    """Test transaction-bound repositories."""

    @pytest.fixture
    def conn(self) -> MagicMock:
        """Create a mock connection."""
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=None)
        conn.fetch = AsyncMock(return_value=[])
        return conn

    @pytest.fixture
    def mock_db(self, conn: MagicMock) -> MagicMock:
        """Create mock database whose transaction yields the connection."""

        @asynccontextmanager
        async def transaction() -> AsyncIterator[MagicMock]:
            yield conn

        db = MagicMock()
        db.transaction = transaction
        db.fetch_one = AsyncMock()
        return db

    @pytest.mark.asyncio
    async def test_queries_use_transaction_connection(
        self, mock_db: MagicMock, conn: MagicMock
    ) -> None:
        """Calls inside the transaction go to its connection, not the pool."""
        repo = PostgresProvisioningRepository(mock_db)

        async with repo.transaction() as tx:
            assert tx is not repo
            await tx.get_team(uuid4())

        conn.fetchrow.assert_awaited_once()
        mock_db.fetch_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_conflict_inside_transaction(
        self, mock_db: MagicMock, conn: MagicMock
    ) -> None:
        """A conflicting insert inside a transaction is translated too."""
        error = asyncpg.UniqueViolationError("duplicate key value")
        error.constraint_name = "uq_teams_subdomain"
        conn.fetchrow = AsyncMock(side_effect=error)
        repo = PostgresProvisioningRepository(mock_db)

        with pytest.raises(ConflictRetryable):
            async with repo.transaction() as tx:
                await tx.create_team(name="Acme", subdomain="acme")

        # The insert ran in its own savepoint
        conn.transaction.assert_called()
