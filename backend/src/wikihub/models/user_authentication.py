"""User authentication model."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wikihub.models.base import BaseModel

if TYPE_CHECKING:
    from wikihub.models.authentication_provider import AuthenticationProvider
    from wikihub.models.user import User


class UserAuthentication(BaseModel):
    """Links an external user identity to a local user."""

    __tablename__ = "user_authentications"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    authentication_provider_id: Mapped[UUID] = mapped_column(
        ForeignKey("authentication_providers.id"), nullable=False
    )
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)  # External user id
    scopes: Mapped[list[str]] = mapped_column(JSONB, default=list)
    access_token: Mapped[str | None] = mapped_column(String, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(String, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="authentications")
    authentication_provider: Mapped["AuthenticationProvider"] = relationship(
        "AuthenticationProvider", back_populates="user_authentications"
    )

    __table_args__ = (UniqueConstraint("authentication_provider_id", "provider_id"),)
