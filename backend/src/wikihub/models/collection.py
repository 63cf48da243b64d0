"""Collection model."""
from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from wikihub.models.base import BaseModel


class Collection(BaseModel):
    """A collection of documents."""

    __tablename__ = "collections"

    team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)
    name = Column(String(255), nullable=False)

    # Relationships
    team = relationship("Team", back_populates="collections")
    integrations = relationship("Integration", back_populates="collection")
