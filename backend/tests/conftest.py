"""Pytest configuration for wikihub tests."""

from __future__ import annotations

import pytest

from wikihub.adapters.provisioning.memory import InMemoryProvisioningRepository
from wikihub.core.provisioning.types import (
    AuthenticationParams,
    AuthenticationProviderParams,
    ProvisionRequest,
    TeamParams,
    UserParams,
)


@pytest.fixture
def anyio_backend() -> str:
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def repo() -> InMemoryProvisioningRepository:
    """Return an empty in-memory provisioning repository."""
    return InMemoryProvisioningRepository()


def make_request(
    provider_id: str = "T0001",
    user_provider_id: str = "U0001",
    team_name: str = "Acme",
    subdomain: str = "acme",
    email: str | None = "jenny@example.com",
    domain: str | None = None,
    team_id=None,
    provider_name: str = "slack",
) -> ProvisionRequest:
    """Build a sign-in request with sensible defaults."""
    return ProvisionRequest(
        ip="127.0.0.1",
        team=TeamParams(
            id=team_id,
            name=team_name,
            subdomain=subdomain,
            avatar_url="https://example.com/team.png",
            domain=domain,
        ),
        user=UserParams(
            name="Jenny Tester",
            email=email,
            avatar_url="https://example.com/jenny.png",
        ),
        authentication_provider=AuthenticationProviderParams(
            name=provider_name,
            provider_id=provider_id,
        ),
        authentication=AuthenticationParams(
            provider_id=user_provider_id,
            access_token="xoxp-123",
            scopes=["identity.basic", "identity.email"],
            expires_in=3600,
        ),
    )


@pytest.fixture
def sign_in_request():
    """Factory fixture for sign-in requests."""
    return make_request
