"""User model."""
from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from wikihub.models.base import BaseModel


class User(BaseModel):
    """A user in the system."""

    __tablename__ = "users"

    team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    avatar_url = Column(String(4096), nullable=True)
    role = Column(String(50), default="member")  # admin, member, viewer
    is_active = Column(Boolean, default=True)
    last_active_ip = Column(String(45), nullable=True)

    # Relationships
    team = relationship("Team", back_populates="users")
    authentications = relationship(
        "UserAuthentication", back_populates="user", cascade="all, delete-orphan"
    )
