"""Tests for AccountProvisioner."""

from unittest.mock import AsyncMock, patch

import pytest

from wikihub.adapters.provisioning.memory import InMemoryProvisioningRepository
from wikihub.core.exceptions import (
    AuthenticationError,
    AuthenticationProviderDisabled,
    DomainNotAllowed,
    TeamCreationDenied,
)
from wikihub.core.provisioning.account_provisioner import AccountProvisioner
from wikihub.core.provisioning.types import DeploymentMode, UserRole


class TestAccountProvisionerHosted:
    """Provisioning on a hosted installation."""

    @pytest.fixture
    def provisioner(self, repo: InMemoryProvisioningRepository) -> AccountProvisioner:
        """Return a multi-tenant provisioner."""
        return AccountProvisioner(repo, DeploymentMode.MULTI_TENANT)

    @pytest.mark.asyncio
    async def test_first_sign_in_creates_everything(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """A first sign-in creates team, provider, user and authentication."""
        result = await provisioner.provision(sign_in_request())

        assert result.is_new_team is True
        assert result.is_new_user is True
        assert result.team.subdomain == "acme"
        assert result.user.role == UserRole.ADMIN
        assert result.user.email == "jenny@example.com"
        assert result.user.last_active_ip == "127.0.0.1"
        assert result.authentication_provider.name == "slack"
        assert result.authentication_provider.provider_id == "T0001"

        [authentication] = repo.user_authentications.values()
        assert authentication.user_id == result.user.id
        assert authentication.scopes == ["identity.basic", "identity.email"]
        assert authentication.expires_at is not None

    @pytest.mark.asyncio
    async def test_repeat_sign_in_is_idempotent(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """Signing in again returns the same team and user."""
        first = await provisioner.provision(sign_in_request())
        second = await provisioner.provision(sign_in_request())

        assert second.is_new_team is False
        assert second.is_new_user is False
        assert second.team.id == first.team.id
        assert second.user.id == first.user.id
        assert len(repo.teams) == 1
        assert len(repo.users) == 1
        assert len(repo.authentication_providers) == 1
        assert len(repo.user_authentications) == 1

    @pytest.mark.asyncio
    async def test_repeat_sign_in_updates_profile(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """Profile changes at the provider are copied on sign-in."""
        first = await provisioner.provision(sign_in_request())
        request = sign_in_request()
        request.user.name = "Jenny Renamed"
        request.authentication.access_token = "xoxp-456"

        second = await provisioner.provision(request)

        assert second.user.id == first.user.id
        assert second.user.name == "Jenny Renamed"
        [authentication] = repo.user_authentications.values()
        assert authentication.access_token == "xoxp-456"

    @pytest.mark.asyncio
    async def test_second_user_is_member(
        self,
        provisioner: AccountProvisioner,
        sign_in_request,
    ) -> None:
        """Users joining an existing team are not admins."""
        await provisioner.provision(sign_in_request())
        result = await provisioner.provision(
            sign_in_request(user_provider_id="U0002", email="bob@example.com")
        )

        assert result.is_new_team is False
        assert result.is_new_user is True
        assert result.user.role == UserRole.MEMBER

    @pytest.mark.asyncio
    async def test_other_workspace_gets_own_team(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """A second workspace with the same name gets a suffixed subdomain."""
        await provisioner.provision(sign_in_request())
        result = await provisioner.provision(
            sign_in_request(provider_id="T0002", user_provider_id="U0002")
        )

        assert result.is_new_team is True
        assert result.team.subdomain == "acme1"
        assert len(repo.teams) == 2

    @pytest.mark.asyncio
    async def test_allowed_domain_attaches_second_provider(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """Signing in through another provider from an allowed domain joins the team."""
        first = await provisioner.provision(sign_in_request())
        repo.add_team_domain(first.team.id, "example.com")

        result = await provisioner.provision(
            sign_in_request(
                provider_id="example.com",
                user_provider_id="google-1",
                provider_name="google",
                domain="example.com",
            )
        )

        assert result.team.id == first.team.id
        assert len(repo.providers_for_team(first.team.id)) == 2

    @pytest.mark.asyncio
    async def test_invited_user_is_linked(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """An invited user is linked instead of duplicated."""
        first = await provisioner.provision(sign_in_request())
        invited = await repo.create_user(
            team_id=first.team.id,
            name="Invited",
            email="bob@example.com",
        )

        result = await provisioner.provision(
            sign_in_request(user_provider_id="U0002", email="Bob@Example.com")
        )

        assert result.is_new_user is False
        assert result.user.id == invited.id
        assert result.user.name == "Jenny Tester"
        assert len(repo.users) == 2

    @pytest.mark.asyncio
    async def test_disabled_provider_rejected(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """A provider disabled on the team cannot be used to sign in."""
        first = await provisioner.provision(sign_in_request())
        provider = first.authentication_provider
        repo.authentication_providers[provider.id] = provider.model_copy(
            update={"enabled": False}
        )

        with pytest.raises(AuthenticationProviderDisabled):
            await provisioner.provision(sign_in_request())

    @pytest.mark.asyncio
    async def test_suspended_user_rejected(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """A suspended user cannot sign in."""
        first = await provisioner.provision(sign_in_request())
        repo.users[first.user.id] = first.user.model_copy(update={"is_active": False})

        with pytest.raises(AuthenticationError):
            await provisioner.provision(sign_in_request())

    @pytest.mark.asyncio
    async def test_failure_rolls_back(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """A failure after the team was created leaves nothing behind."""
        with (
            patch.object(repo, "create_user", AsyncMock(side_effect=RuntimeError("boom"))),
            pytest.raises(RuntimeError),
        ):
            await provisioner.provision(sign_in_request())

        assert repo.teams == {}
        assert repo.authentication_providers == {}
        assert repo.users == {}


class TestAccountProvisionerSelfHosted:
    """Provisioning on a self-hosted installation."""

    @pytest.fixture
    def provisioner(self, repo: InMemoryProvisioningRepository) -> AccountProvisioner:
        """Return a single-tenant provisioner."""
        return AccountProvisioner(repo, DeploymentMode.SINGLE_TENANT)

    @pytest.mark.asyncio
    async def test_first_sign_in_creates_team(
        self,
        provisioner: AccountProvisioner,
        sign_in_request,
    ) -> None:
        """The first sign-in creates the installation's team."""
        result = await provisioner.provision(sign_in_request())

        assert result.is_new_team is True
        assert result.team.subdomain is None

    @pytest.mark.asyncio
    async def test_other_workspace_denied(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """A second workspace cannot create another team."""
        await provisioner.provision(sign_in_request())

        with pytest.raises(TeamCreationDenied):
            await provisioner.provision(
                sign_in_request(provider_id="T0002", user_provider_id="U0002")
            )

        assert len(repo.teams) == 1
        assert len(repo.users) == 1

    @pytest.mark.asyncio
    async def test_disallowed_domain_denied(
        self,
        provisioner: AccountProvisioner,
        repo: InMemoryProvisioningRepository,
        sign_in_request,
    ) -> None:
        """A provider from a domain the team does not allow is rejected."""
        first = await provisioner.provision(sign_in_request())
        repo.add_team_domain(first.team.id, "example.com")

        with pytest.raises(DomainNotAllowed):
            await provisioner.provision(
                sign_in_request(
                    provider_id="other.com",
                    user_provider_id="google-2",
                    provider_name="google",
                    domain="other.com",
                )
            )

        assert len(repo.providers_for_team(first.team.id)) == 1


class TestSubdomainScenario:
    """End-to-end subdomain assignment on a hosted installation."""

    @pytest.mark.asyncio
    async def test_example_then_myteam_suffixes(
        self, repo: InMemoryProvisioningRepository, sign_in_request
    ) -> None:
        """Repeat sign-ins keep their subdomain; new teams get the next free one."""
        provisioner = AccountProvisioner(repo, DeploymentMode.MULTI_TENANT)

        first = await provisioner.provision(
            sign_in_request(team_name="Test team", subdomain="example")
        )
        again = await provisioner.provision(
            sign_in_request(team_name="Test team", subdomain="example")
        )
        assert first.is_new_team is True
        assert first.team.subdomain == "example"
        assert again.is_new_team is False
        assert again.team.subdomain == "example"

        repo.add_team(name="My team", subdomain="myteam")
        second = await provisioner.provision(
            sign_in_request(provider_id="T0002", subdomain="myteam")
        )
        assert second.team.subdomain == "myteam1"

        third = await provisioner.provision(
            sign_in_request(provider_id="T0003", subdomain="myteam")
        )
        assert third.team.subdomain == "myteam2"
