"""Account provisioning shared by every OAuth sign-in."""

from datetime import UTC, datetime, timedelta

import structlog

from wikihub.core.exceptions import (
    AuthenticationError,
    AuthenticationProviderDisabled,
    ConflictRetryable,
)
from wikihub.core.provisioning.repository import ProvisioningRepository
from wikihub.core.provisioning.team_resolver import TeamResolver
from wikihub.core.provisioning.types import (
    AccountProvisionerResult,
    AuthenticationProvider,
    AuthenticationProviderParams,
    DeploymentMode,
    ProvisionRequest,
    Team,
    User,
    UserRole,
)

logger = structlog.get_logger()


class AccountProvisioner:
    """Resolves the team, provider, and user for a successful sign-in."""

    def __init__(self, repo: ProvisioningRepository, mode: DeploymentMode) -> None:
        """Initialize with repository and deployment mode.

        Args:
            repo: Provisioning repository; a transaction is opened per call.
            mode: Deployment mode of the installation.
        """
        self._repo = repo
        self._resolver = TeamResolver(mode)

    async def provision(self, request: ProvisionRequest) -> AccountProvisionerResult:
        """Provision the team, authentication provider, and user.

        All writes happen in one transaction, so a failure at any step
        leaves no half-created team behind.

        Args:
            request: Normalized sign-in data from the OAuth callback.

        Returns:
            The team, user, and provider, and whether team and user are new.

        Raises:
            WikihubError: Any provisioning failure, unchanged.
        """
        async with self._repo.transaction() as repo:
            resolution = await self._resolver.resolve(
                repo,
                request.team,
                request.authentication_provider,
            )
            team = resolution.team

            authentication_provider = await self._attach_provider(
                repo, team, request.authentication_provider
            )
            if not authentication_provider.enabled:
                raise AuthenticationProviderDisabled()

            user, is_new_user = await self._find_or_create_user(
                repo,
                team,
                authentication_provider,
                request,
                is_new_team=resolution.is_new_team,
            )

        logger.info(
            "account_provisioned",
            team_id=str(team.id),
            user_id=str(user.id),
            provider=authentication_provider.name,
            is_new_team=resolution.is_new_team,
            is_new_user=is_new_user,
        )

        return AccountProvisionerResult(
            team=team,
            user=user,
            authentication_provider=authentication_provider,
            is_new_team=resolution.is_new_team,
            is_new_user=is_new_user,
        )

    async def _attach_provider(
        self,
        repo: ProvisioningRepository,
        team: Team,
        params: AuthenticationProviderParams,
    ) -> AuthenticationProvider:
        """Find the provider on the team or attach it. Idempotent."""
        existing = await repo.find_authentication_provider(
            name=params.name,
            provider_id=params.provider_id,
            team_id=team.id,
        )
        if existing:
            return existing

        try:
            provider = await repo.create_authentication_provider(
                team_id=team.id,
                name=params.name,
                provider_id=params.provider_id,
            )
        except ConflictRetryable:
            # Attached by a concurrent sign-in
            provider = await repo.find_authentication_provider(
                name=params.name,
                provider_id=params.provider_id,
                team_id=team.id,
            )
            if provider is None:
                raise

        logger.info(
            "authentication_provider_attached",
            team_id=str(team.id),
            provider=params.name,
            provider_id=params.provider_id,
        )
        return provider

    async def _find_or_create_user(
        self,
        repo: ProvisioningRepository,
        team: Team,
        authentication_provider: AuthenticationProvider,
        request: ProvisionRequest,
        is_new_team: bool,
    ) -> tuple[User, bool]:
        """Find the user by external identity, or link an invite, or create one."""
        params = request.user
        authentication = request.authentication
        expires_at = None
        if authentication.expires_in:
            expires_at = datetime.now(UTC) + timedelta(seconds=authentication.expires_in)

        existing = await repo.get_user_authentication(
            authentication_provider.id,
            authentication.provider_id,
        )
        if existing:
            user = await repo.get_user(existing.user_id)
            if user is None:
                raise AuthenticationError("User for this authentication no longer exists")
            if not user.is_active:
                raise AuthenticationError("User account is suspended")

            await repo.update_user_authentication(
                existing.id,
                scopes=authentication.scopes,
                access_token=authentication.access_token,
                refresh_token=authentication.refresh_token,
                expires_at=expires_at,
            )
            updated = await repo.update_user(
                user.id,
                name=params.name,
                avatar_url=params.avatar_url,
                last_active_ip=request.ip,
            )
            return updated or user, False

        # An invited user signs in for the first time
        invited = None
        if params.email:
            invited = await repo.get_invited_user(team.id, params.email)

        if invited:
            user = await repo.update_user(
                invited.id,
                name=params.name,
                avatar_url=params.avatar_url,
                last_active_ip=request.ip,
            ) or invited
            is_new_user = False
        else:
            user = await repo.create_user(
                team_id=team.id,
                name=params.name,
                email=params.email,
                avatar_url=params.avatar_url,
                role=UserRole.ADMIN if is_new_team else UserRole.MEMBER,
                last_active_ip=request.ip,
            )
            is_new_user = True
            logger.info("user_created", team_id=str(team.id), user_id=str(user.id))

        await repo.create_user_authentication(
            user_id=user.id,
            authentication_provider_id=authentication_provider.id,
            provider_id=authentication.provider_id,
            scopes=authentication.scopes,
            access_token=authentication.access_token,
            refresh_token=authentication.refresh_token,
            expires_at=expires_at,
        )
        return user, is_new_user
