"""SQLAlchemy models for the application database."""
from wikihub.models.base import BaseModel
from wikihub.models.team import Team
from wikihub.models.team_domain import TeamDomain
from wikihub.models.authentication_provider import AuthenticationProvider
from wikihub.models.user import User
from wikihub.models.user_authentication import UserAuthentication
from wikihub.models.collection import Collection
from wikihub.models.integration import Integration, IntegrationAuthentication, IntegrationType

__all__ = [
    "BaseModel",
    "Team",
    "TeamDomain",
    "AuthenticationProvider",
    "User",
    "UserAuthentication",
    "Collection",
    "Integration",
    "IntegrationAuthentication",
    "IntegrationType",
]
