"""Authentication provider model."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wikihub.models.base import BaseModel

if TYPE_CHECKING:
    from wikihub.models.team import Team
    from wikihub.models.user_authentication import UserAuthentication


class AuthenticationProvider(BaseModel):
    """An external identity provider account linked to a team."""

    __tablename__ = "authentication_providers"

    team_id: Mapped[UUID] = mapped_column(ForeignKey("teams.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)  # slack, google, ...
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    team: Mapped["Team"] = relationship("Team", back_populates="authentication_providers")
    user_authentications: Mapped[list["UserAuthentication"]] = relationship(
        "UserAuthentication",
        back_populates="authentication_provider",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("team_id", "name", "provider_id"),)
