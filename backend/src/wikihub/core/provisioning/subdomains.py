"""Subdomain normalization, availability, and team URLs."""

import re
from urllib.parse import urlsplit, urlunsplit

from wikihub.core.provisioning.repository import ProvisioningRepository
from wikihub.core.provisioning.types import DeploymentMode, Team

MAX_SUBDOMAIN_LENGTH = 32

# Hostnames the application itself answers on
RESERVED_SUBDOMAINS = frozenset(
    {
        "about",
        "admin",
        "api",
        "app",
        "assets",
        "auth",
        "billing",
        "blog",
        "cdn",
        "dev",
        "docs",
        "help",
        "mail",
        "new",
        "signin",
        "signup",
        "static",
        "status",
        "support",
        "www",
    }
)


def normalize_subdomain(value: str) -> str:
    """Generate a URL-safe subdomain from a name or domain.

    Args:
        value: Raw value, e.g. a Slack workspace domain or team name.

    Returns:
        Lowercase subdomain containing only letters, digits and hyphens.
    """
    subdomain = value.lower()
    subdomain = re.sub(r"[^a-z0-9]+", "-", subdomain)
    subdomain = subdomain.strip("-")
    return subdomain[:MAX_SUBDOMAIN_LENGTH].rstrip("-")


def is_reserved_subdomain(subdomain: str) -> bool:
    """Whether the subdomain belongs to the application itself."""
    return subdomain in RESERVED_SUBDOMAINS


async def is_subdomain_available(repo: ProvisioningRepository, subdomain: str) -> bool:
    """Whether no team uses the subdomain and it is not reserved."""
    if not subdomain or is_reserved_subdomain(subdomain):
        return False
    return await repo.get_team_by_subdomain(subdomain) is None


async def resolve_available_subdomain(repo: ProvisioningRepository, desired: str) -> str:
    """Return ``desired`` if free, else the first free ``desired1``, ``desired2``, ...

    The result is only guaranteed free at the instant of the check; the
    caller still has to handle a conflict on insert.

    Args:
        repo: Repository to check against.
        desired: Normalized candidate subdomain.

    Returns:
        An unused subdomain of at most ``MAX_SUBDOMAIN_LENGTH`` characters.
    """
    subdomain = desired
    append = 0
    while not await is_subdomain_available(repo, subdomain):
        append += 1
        suffix = str(append)
        # Shorten the base so the suffix still fits the column
        base = desired[: MAX_SUBDOMAIN_LENGTH - len(suffix)].rstrip("-")
        subdomain = f"{base}{suffix}"
    return subdomain


def team_url(team: Team, base_url: str, mode: DeploymentMode, subdomains_enabled: bool = True) -> str:
    """Public URL of a team.

    Args:
        team: The team.
        base_url: Root URL of the installation, e.g. ``https://wikihub.app``.
        mode: Deployment mode.
        subdomains_enabled: Whether teams are served on their own subdomain.

    Returns:
        URL without a trailing slash.
    """
    if team.domain:
        return f"https://{team.domain}"

    base_url = base_url.rstrip("/")
    if mode is not DeploymentMode.MULTI_TENANT or not team.subdomain or not subdomains_enabled:
        return base_url

    parts = urlsplit(base_url)
    host = parts.netloc
    # Serve from the apex even if the configured URL points at a subdomain
    labels = host.split(".")
    if len(labels) > 2:
        host = ".".join(labels[1:])
    return urlunsplit((parts.scheme, f"{team.subdomain}.{host}", parts.path, "", ""))
