"""Allow-listed login domain model."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wikihub.models.base import BaseModel

if TYPE_CHECKING:
    from wikihub.models.team import Team


class TeamDomain(BaseModel):
    """A login domain whose users may join a team."""

    __tablename__ = "team_domains"

    team_id: Mapped[UUID] = mapped_column(ForeignKey("teams.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)  # Stored lowercase
    created_by_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    # Relationships
    team: Mapped["Team"] = relationship("Team", back_populates="allowed_domains")

    __table_args__ = (UniqueConstraint("team_id", "name"),)
