"""PostgreSQL implementation of IntegrationRepository."""

import json
from typing import Any
from uuid import UUID

import structlog

from wikihub.adapters.db.app_db import AppDatabase
from wikihub.core.integrations.types import (
    Collection,
    Integration,
    IntegrationAuthentication,
    IntegrationType,
)
from wikihub.models.integration import IntegrationAuthentication as IntegrationAuthenticationModel

logger = structlog.get_logger()


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


class PostgresIntegrationRepository:
    """PostgreSQL implementation of the integration repository.

    Tokens granted by third-party services are Fernet-encrypted before
    they are written.
    """

    def __init__(self, db: AppDatabase, encryption_key: bytes) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
            encryption_key: Fernet key used to encrypt stored tokens.
        """
        self._db = db
        self._encryption_key = encryption_key

    async def get_collection(self, collection_id: UUID) -> Collection | None:
        """Get collection by ID."""
        row = await self._db.fetch_one(
            "SELECT id, team_id, name FROM collections WHERE id = $1",
            collection_id,
        )
        if not row:
            return None
        return Collection(id=row["id"], team_id=row["team_id"], name=row["name"])

    async def create_integration_authentication(
        self,
        service: str,
        user_id: UUID,
        team_id: UUID,
        token: str,
        scopes: list[str],
    ) -> IntegrationAuthentication:
        """Store a token granted by a third-party service."""
        token_encrypted = IntegrationAuthenticationModel.encrypt_token(token, self._encryption_key)
        row = await self._db.execute_returning(
            """
            INSERT INTO integration_authentications
            (service, user_id, team_id, token_encrypted, scopes)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id, service, user_id, team_id, scopes, created_at
            """,
            service,
            user_id,
            team_id,
            token_encrypted,
            json.dumps(scopes),
        )
        if row is None:
            raise RuntimeError("Failed to create integration authentication")

        return IntegrationAuthentication(
            id=row["id"],
            service=row["service"],
            user_id=row["user_id"],
            team_id=row["team_id"],
            scopes=_load_json(row.get("scopes")) or [],
            created_at=row["created_at"],
        )

    async def create_integration(
        self,
        service: str,
        type: IntegrationType,
        user_id: UUID,
        team_id: UUID,
        authentication_id: UUID | None = None,
        collection_id: UUID | None = None,
        events: list[str] | None = None,
        settings: dict[str, Any] | None = None,
    ) -> Integration:
        """Create an integration."""
        row = await self._db.execute_returning(
            """
            INSERT INTO integrations
            (service, type, user_id, team_id, authentication_id, collection_id, events, settings)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING *
            """,
            service,
            type.value,
            user_id,
            team_id,
            authentication_id,
            collection_id,
            json.dumps(events or []),
            json.dumps(settings or {}),
        )
        if row is None:
            raise RuntimeError("Failed to create integration")

        logger.info(
            "integration_created",
            integration_id=str(row["id"]),
            service=service,
            type=type.value,
            team_id=str(team_id),
        )

        return Integration(
            id=row["id"],
            service=row["service"],
            type=IntegrationType(row["type"]),
            user_id=row["user_id"],
            team_id=row["team_id"],
            authentication_id=row.get("authentication_id"),
            collection_id=row.get("collection_id"),
            events=_load_json(row.get("events")) or [],
            settings=_load_json(row.get("settings")) or {},
            created_at=row["created_at"],
        )
