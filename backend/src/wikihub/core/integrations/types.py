"""Integration domain types."""

from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel, Field


class IntegrationType(str, Enum):
    """Kinds of third-party integration."""

    COMMAND = "command"  # Slash commands that search the knowledge base
    POST = "post"  # Posts document events into a channel


class Collection(BaseModel):
    """A collection of documents within a team."""

    id: UUID
    team_id: UUID
    name: str


class IntegrationAuthentication(BaseModel):
    """A token granted to the workspace by a third-party service."""

    id: UUID
    service: str
    user_id: UUID
    team_id: UUID
    scopes: list[str] = Field(default_factory=list)
    created_at: datetime


class Integration(BaseModel):
    """A configured integration of a team or collection."""

    id: UUID
    service: str
    type: IntegrationType
    user_id: UUID
    team_id: UUID
    authentication_id: UUID | None = None
    collection_id: UUID | None = None
    events: list[str] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


@runtime_checkable
class IntegrationRepository(Protocol):
    """Protocol for integration database operations."""

    async def get_collection(self, collection_id: UUID) -> Collection | None:
        """Get collection by ID."""
        ...

    async def create_integration_authentication(
        self,
        service: str,
        user_id: UUID,
        team_id: UUID,
        token: str,
        scopes: list[str],
    ) -> IntegrationAuthentication:
        """Store a token granted by a third-party service."""
        ...

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
        ...
