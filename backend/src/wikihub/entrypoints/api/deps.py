"""Dependency injection and application lifespan management."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated

import structlog
from cryptography.fernet import Fernet
from fastapi import Depends, HTTPException, Request

from wikihub.adapters.db.app_db import AppDatabase
from wikihub.adapters.integrations.postgres import PostgresIntegrationRepository
from wikihub.adapters.provisioning.postgres import PostgresProvisioningRepository
from wikihub.adapters.slack.client import SlackClient, SlackConfig
from wikihub.core.integrations.types import IntegrationRepository
from wikihub.core.provisioning.account_provisioner import AccountProvisioner
from wikihub.core.provisioning.repository import ProvisioningRepository
from wikihub.core.provisioning.types import DeploymentMode
from wikihub.entrypoints.api.oauth_state import OAuthStateStore

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = structlog.get_logger()


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.url = os.getenv("URL", "http://localhost:3000").rstrip("/")
        self.deployment = DeploymentMode.from_env(os.getenv("DEPLOYMENT"))
        self.subdomains_enabled = os.getenv("SUBDOMAINS_ENABLED", "false").lower() == "true"
        self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost:5432/wikihub")

        # Slack app credentials; sign in with Slack is disabled without them
        self.slack_client_id = os.getenv("SLACK_CLIENT_ID", "")
        self.slack_client_secret = os.getenv("SLACK_CLIENT_SECRET", "")

        # Fernet key for tokens granted by integrations
        self.encryption_key = os.getenv("ENCRYPTION_KEY")

    @property
    def slack_enabled(self) -> bool:
        """Whether Slack credentials are configured."""
        return bool(self.slack_client_id and self.slack_client_secret)


settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    This context manager handles:
    - Database connection pool setup
    - Repository and Slack client construction
    - OAuth state store
    """
    app_db = AppDatabase(settings.database_url)
    await app_db.connect()

    encryption_key = settings.encryption_key
    if not encryption_key:
        # Tokens written with a generated key cannot be read after a restart
        logger.warning("encryption_key_missing_generating_ephemeral_key")
        encryption_key = Fernet.generate_key().decode()

    slack_client = None
    if settings.slack_enabled:
        slack_client = SlackClient(
            SlackConfig(
                client_id=settings.slack_client_id,
                client_secret=settings.slack_client_secret,
            )
        )

    # Store in app state
    app.state.settings = settings
    app.state.app_db = app_db
    app.state.provisioning_repo = PostgresProvisioningRepository(app_db)
    app.state.integration_repo = PostgresIntegrationRepository(app_db, encryption_key.encode())
    app.state.slack_client = slack_client
    app.state.state_store = OAuthStateStore()

    logger.info(
        "app_started",
        deployment=settings.deployment.value,
        slack_enabled=settings.slack_enabled,
    )

    yield

    await app_db.close()


def get_settings(request: Request) -> Settings:
    """Get settings from app state."""
    app_settings: Settings = getattr(request.app.state, "settings", settings)
    return app_settings


def get_provisioning_repo(request: Request) -> ProvisioningRepository:
    """Get provisioning repository from app state."""
    repo: ProvisioningRepository = request.app.state.provisioning_repo
    return repo


def get_integration_repo(request: Request) -> IntegrationRepository:
    """Get integration repository from app state."""
    repo: IntegrationRepository = request.app.state.integration_repo
    return repo


def get_state_store(request: Request) -> OAuthStateStore:
    """Get OAuth state store from app state."""
    store: OAuthStateStore = request.app.state.state_store
    return store


def get_slack_client(request: Request) -> SlackClient:
    """Get Slack client from app state.

    Raises:
        HTTPException: 404 if Slack is not configured.
    """
    client: SlackClient | None = getattr(request.app.state, "slack_client", None)
    if client is None:
        raise HTTPException(status_code=404, detail="Slack is not configured")
    return client


def get_account_provisioner(
    repo: Annotated[ProvisioningRepository, Depends(get_provisioning_repo)],
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> AccountProvisioner:
    """Build an account provisioner for the configured deployment mode."""
    return AccountProvisioner(repo, app_settings.deployment)
