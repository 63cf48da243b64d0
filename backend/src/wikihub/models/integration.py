"""Integration models."""
from cryptography.fernet import Fernet
from sqlalchemy import Column, Enum, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship

from wikihub.core.integrations.types import IntegrationType
from wikihub.models.base import BaseModel


class IntegrationAuthentication(BaseModel):
    """Token granted by a third-party service."""

    __tablename__ = "integration_authentications"

    service = Column(String(50), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)

    # Token (encrypted)
    token_encrypted = Column(String, nullable=False)
    scopes = Column(JSONB, default=list)

    # Relationships
    integrations = relationship("Integration", back_populates="authentication")

    def get_token(self, encryption_key: bytes) -> str:
        """Decrypt and return the token."""
        return self.decrypt_token(self.token_encrypted, encryption_key)

    @staticmethod
    def encrypt_token(token: str, encryption_key: bytes) -> str:
        """Encrypt a token for storage."""
        f = Fernet(encryption_key)
        return f.encrypt(token.encode()).decode()

    @staticmethod
    def decrypt_token(token_encrypted: str, encryption_key: bytes) -> str:
        """Decrypt a stored token."""
        f = Fernet(encryption_key)
        return f.decrypt(token_encrypted.encode()).decode()


class Integration(BaseModel):
    """A configured integration of a team or collection."""

    __tablename__ = "integrations"

    service = Column(String(50), nullable=False)
    type = Column(
        Enum(IntegrationType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)
    authentication_id = Column(
        UUID(as_uuid=True), ForeignKey("integration_authentications.id"), nullable=True
    )
    collection_id = Column(UUID(as_uuid=True), ForeignKey("collections.id"), nullable=True)
    events = Column(JSONB, default=list)
    settings = Column(JSONB, default=dict)

    # Relationships
    team = relationship("Team", back_populates="integrations")
    collection = relationship("Collection", back_populates="integrations")
    authentication = relationship("IntegrationAuthentication", back_populates="integrations")
