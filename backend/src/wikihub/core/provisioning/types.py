"""Provisioning domain types."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class DeploymentMode(str, Enum):
    """How many teams one running installation may hold."""

    MULTI_TENANT = "multi-tenant"
    SINGLE_TENANT = "single-tenant"

    @classmethod
    def from_env(cls, value: str | None) -> "DeploymentMode":
        """Map the DEPLOYMENT environment value to a mode.

        Only ``hosted`` selects multi-tenant; anything else is self-hosted.
        """
        if value and value.strip().lower() == "hosted":
            return cls.MULTI_TENANT
        return cls.SINGLE_TENANT


class UserRole(str, Enum):
    """Team membership roles."""

    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class Team(BaseModel):
    """Team domain model."""

    id: UUID
    name: str
    subdomain: str | None = None  # None for self-hosted installations
    domain: str | None = None  # Custom domain, if configured
    avatar_url: str | None = None
    created_at: datetime


class TeamDomain(BaseModel):
    """An allow-listed login domain for a team."""

    id: UUID
    team_id: UUID
    name: str
    created_by_id: UUID | None = None
    created_at: datetime


class AuthenticationProvider(BaseModel):
    """An external identity provider account linked to a team."""

    id: UUID
    team_id: UUID
    name: str
    provider_id: str
    enabled: bool = True
    created_at: datetime


class User(BaseModel):
    """User domain model."""

    id: UUID
    team_id: UUID
    name: str
    email: str | None = None
    avatar_url: str | None = None
    role: UserRole = UserRole.MEMBER
    is_active: bool = True
    last_active_ip: str | None = None
    created_at: datetime


class UserAuthentication(BaseModel):
    """Links an external user identity to a local user."""

    id: UUID
    user_id: UUID
    authentication_provider_id: UUID
    provider_id: str  # External user id at the provider
    scopes: list[str] = Field(default_factory=list)
    access_token: str | None = None
    refresh_token: str | None = None
    expires_at: datetime | None = None
    created_at: datetime


# Request types


class TeamParams(BaseModel):
    """Attributes of the team an authentication belongs to."""

    id: UUID | None = None  # Team bound to the request context, if any
    name: str
    subdomain: str
    avatar_url: str | None = None
    domain: str | None = None  # Login domain reported by the provider


class UserParams(BaseModel):
    """Attributes of the authenticating user."""

    name: str
    email: str | None = None
    avatar_url: str | None = None


class AuthenticationProviderParams(BaseModel):
    """Identifies the provider account, e.g. a Slack workspace or a Google domain."""

    name: str
    provider_id: str


class AuthenticationParams(BaseModel):
    """The user's own identity and grant at the provider."""

    provider_id: str
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None  # Seconds
    scopes: list[str] = Field(default_factory=list)


class ProvisionRequest(BaseModel):
    """Everything one OAuth callback knows about the sign-in."""

    ip: str | None = None
    team: TeamParams
    user: UserParams
    authentication_provider: AuthenticationProviderParams
    authentication: AuthenticationParams


# Result types


class TeamResolution(BaseModel):
    """Outcome of team resolution."""

    team: Team
    is_new_team: bool


class AccountProvisionerResult(BaseModel):
    """Outcome of account provisioning."""

    team: Team
    user: User
    authentication_provider: AuthenticationProvider
    is_new_team: bool
    is_new_user: bool
