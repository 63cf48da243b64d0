"""Team model."""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from wikihub.models.base import BaseModel


class Team(BaseModel):
    """A team (workspace) in the system."""

    __tablename__ = "teams"

    name = Column(String(255), nullable=False)
    # Unique across the installation; NULL for self-hosted installations
    subdomain = Column(String(32), unique=True, nullable=True)
    domain = Column(String(255), unique=True, nullable=True)
    avatar_url = Column(String(4096), nullable=True)

    # Relationships
    users = relationship("User", back_populates="team", cascade="all, delete-orphan")
    allowed_domains = relationship("TeamDomain", back_populates="team", cascade="all, delete-orphan")
    authentication_providers = relationship(
        "AuthenticationProvider", back_populates="team", cascade="all, delete-orphan"
    )
    collections = relationship("Collection", back_populates="team", cascade="all, delete-orphan")
    integrations = relationship("Integration", back_populates="team", cascade="all, delete-orphan")
