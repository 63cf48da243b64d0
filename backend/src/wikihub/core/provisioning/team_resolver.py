"""Team resolution for sign-ins."""

from uuid import UUID

import structlog

from wikihub.core.exceptions import (
    ConflictRetryable,
    DomainNotAllowed,
    TeamCreationDenied,
    TeamNotFoundError,
)
from wikihub.core.provisioning.repository import ProvisioningRepository
from wikihub.core.provisioning.subdomains import resolve_available_subdomain
from wikihub.core.provisioning.types import (
    AuthenticationProviderParams,
    DeploymentMode,
    Team,
    TeamParams,
    TeamResolution,
)

logger = structlog.get_logger()


async def is_domain_allowed(repo: ProvisioningRepository, team: Team, domain: str) -> bool:
    """Whether a login domain may join the team.

    A team without any allow-listed domains accepts every domain.
    """
    allowed = await repo.get_team_domains(team.id)
    if not allowed:
        return True
    return domain.lower() in {d.name.lower() for d in allowed}


class TeamResolver:
    """Finds the team a sign-in belongs to, or creates one."""

    def __init__(self, mode: DeploymentMode) -> None:
        """Initialize the resolver.

        Args:
            mode: Deployment mode of the installation.
        """
        self.mode = mode

    async def resolve(
        self,
        repo: ProvisioningRepository,
        params: TeamParams,
        provider: AuthenticationProviderParams,
    ) -> TeamResolution:
        """Resolve the team for a sign-in.

        Args:
            repo: Repository bound to the current transaction.
            params: Team attributes reported by the provider.
            provider: The authentication provider account.

        Returns:
            The team and whether it was created by this call.

        Raises:
            TeamNotFoundError: An explicit team id, or the counted team of a
                self-hosted installation, does not exist.
            DomainNotAllowed: A specific team was expected and it does not
                allow the login domain.
            TeamCreationDenied: A self-hosted installation already has a team.
            ConflictRetryable: Team creation conflicted twice.
        """
        if params.id is not None:
            return await self._resolve_context_team(repo, params.id, params)

        if self.mode is DeploymentMode.MULTI_TENANT:
            return await self._resolve_multi_tenant(repo, params, provider)
        return await self._resolve_single_tenant(repo, params, provider)

    async def _resolve_context_team(
        self,
        repo: ProvisioningRepository,
        team_id: UUID,
        params: TeamParams,
    ) -> TeamResolution:
        team = await repo.get_team(team_id)
        if team is None:
            raise TeamNotFoundError(f"Team {team_id} not found")

        if params.domain and not await is_domain_allowed(repo, team, params.domain):
            logger.warning("team_domain_not_allowed", team_id=str(team.id), domain=params.domain)
            raise DomainNotAllowed()

        return TeamResolution(team=team, is_new_team=False)

    async def _resolve_multi_tenant(
        self,
        repo: ProvisioningRepository,
        params: TeamParams,
        provider: AuthenticationProviderParams,
    ) -> TeamResolution:
        # An allow-listed domain wins over whatever name/subdomain was requested
        if params.domain:
            team = await repo.find_team_by_domain(params.domain.lower())
            if team:
                return TeamResolution(team=team, is_new_team=False)

        existing = await self._find_team_by_provider(repo, provider)
        if existing:
            return TeamResolution(team=existing, is_new_team=False)

        team = await self._create_team(repo, params)
        return TeamResolution(team=team, is_new_team=True)

    async def _resolve_single_tenant(
        self,
        repo: ProvisioningRepository,
        params: TeamParams,
        provider: AuthenticationProviderParams,
    ) -> TeamResolution:
        existing = await self._find_team_by_provider(repo, provider)
        if existing:
            return TeamResolution(team=existing, is_new_team=False)

        if await repo.count_teams() >= 1:
            team = await repo.get_first_team()
            if team is None:
                raise TeamNotFoundError("Team count and lookup disagree")

            if params.domain:
                if await is_domain_allowed(repo, team, params.domain):
                    return TeamResolution(team=team, is_new_team=False)
                logger.warning(
                    "team_domain_not_allowed",
                    team_id=str(team.id),
                    domain=params.domain,
                )
                raise DomainNotAllowed()

            raise TeamCreationDenied()

        team = await self._create_team(repo, params)
        return TeamResolution(team=team, is_new_team=True)

    async def _find_team_by_provider(
        self,
        repo: ProvisioningRepository,
        provider: AuthenticationProviderParams,
    ) -> Team | None:
        existing = await repo.find_authentication_provider(
            name=provider.name,
            provider_id=provider.provider_id,
        )
        if existing is None:
            return None
        return await repo.get_team(existing.team_id)

    async def _create_team(self, repo: ProvisioningRepository, params: TeamParams) -> Team:
        """Create a team, retrying once if the subdomain was taken concurrently."""
        if self.mode is not DeploymentMode.MULTI_TENANT:
            team = await repo.create_team(name=params.name, avatar_url=params.avatar_url)
            logger.info("team_created", team_id=str(team.id), subdomain=None)
            return team

        subdomain = await resolve_available_subdomain(repo, params.subdomain)
        try:
            team = await repo.create_team(
                name=params.name,
                subdomain=subdomain,
                avatar_url=params.avatar_url,
            )
        except ConflictRetryable:
            logger.warning("team_create_conflict_retrying", subdomain=subdomain)
            # A second conflict propagates to the caller
            subdomain = await resolve_available_subdomain(repo, params.subdomain)
            team = await repo.create_team(
                name=params.name,
                subdomain=subdomain,
                avatar_url=params.avatar_url,
            )

        logger.info("team_created", team_id=str(team.id), subdomain=subdomain)
        return team
