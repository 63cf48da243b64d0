"""Third-party integrations."""

from wikihub.core.integrations.types import (
    Collection,
    Integration,
    IntegrationAuthentication,
    IntegrationRepository,
    IntegrationType,
)

__all__ = [
    "Collection",
    "Integration",
    "IntegrationAuthentication",
    "IntegrationRepository",
    "IntegrationType",
]
