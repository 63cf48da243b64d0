"""Team, authentication provider, and user provisioning."""

from wikihub.core.provisioning.account_provisioner import AccountProvisioner
from wikihub.core.provisioning.repository import ProvisioningRepository
from wikihub.core.provisioning.subdomains import (
    normalize_subdomain,
    resolve_available_subdomain,
    team_url,
)
from wikihub.core.provisioning.team_resolver import TeamResolver, is_domain_allowed
from wikihub.core.provisioning.types import (
    AccountProvisionerResult,
    AuthenticationParams,
    AuthenticationProvider,
    AuthenticationProviderParams,
    DeploymentMode,
    ProvisionRequest,
    Team,
    TeamDomain,
    TeamParams,
    TeamResolution,
    User,
    UserAuthentication,
    UserParams,
    UserRole,
)

__all__ = [
    "AccountProvisioner",
    "AccountProvisionerResult",
    "AuthenticationParams",
    "AuthenticationProvider",
    "AuthenticationProviderParams",
    "DeploymentMode",
    "ProvisionRequest",
    "ProvisioningRepository",
    "Team",
    "TeamDomain",
    "TeamParams",
    "TeamResolution",
    "TeamResolver",
    "User",
    "UserAuthentication",
    "UserParams",
    "UserRole",
    "is_domain_allowed",
    "normalize_subdomain",
    "resolve_available_subdomain",
    "team_url",
]
