"""Integration repository implementations."""

from wikihub.adapters.integrations.postgres import PostgresIntegrationRepository

__all__ = ["PostgresIntegrationRepository"]
