"""Auth domain types and utilities."""

from wikihub.core.auth.jwt import (
    TokenError,
    create_access_token,
    create_transfer_token,
    decode_token,
)
from wikihub.core.auth.types import TokenPayload

__all__ = [
    "TokenPayload",
    "create_access_token",
    "create_transfer_token",
    "decode_token",
    "TokenError",
]
