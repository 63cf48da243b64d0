"""Provisioning repository implementations."""

from wikihub.adapters.provisioning.memory import InMemoryProvisioningRepository
from wikihub.adapters.provisioning.postgres import PostgresProvisioningRepository

__all__ = ["InMemoryProvisioningRepository", "PostgresProvisioningRepository"]
