"""JWT token creation and validation."""

import os
from datetime import datetime, timedelta, timezone

import jwt

from wikihub.core.auth.types import TokenPayload


class TokenError(Exception):
    """Raised when token validation fails."""

    pass


# Configuration
SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 15
TRANSFER_TOKEN_EXPIRE_MINUTES = 1


def _encode(user_id: str, team_id: str, role: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "team_id": team_id,
        "role": role,
        "type": token_type,
        "exp": int((now + lifetime).timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(user_id: str, team_id: str, role: str) -> str:
    """Create a short-lived access token.

    Args:
        user_id: User identifier
        team_id: Team identifier
        role: User's role in the team

    Returns:
        Encoded JWT string
    """
    return _encode(
        user_id,
        team_id,
        role,
        "access",
        timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_transfer_token(user_id: str, team_id: str, role: str) -> str:
    """Create a one-minute token that hands a sign-in to the team's own URL.

    OAuth callbacks land on the root domain, which cannot set a session
    for a team subdomain; the subdomain exchanges this token instead.

    Args:
        user_id: User identifier
        team_id: Team identifier
        role: User's role in the team

    Returns:
        Encoded JWT string
    """
    return _encode(
        user_id,
        team_id,
        role,
        "transfer",
        timedelta(minutes=TRANSFER_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str) -> TokenPayload:
    """Decode and validate a JWT token.

    Args:
        token: Encoded JWT string

    Returns:
        Decoded token payload

    Raises:
        TokenError: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return TokenPayload(
            sub=payload["sub"],
            team_id=payload["team_id"],
            role=payload["role"],
            type=payload.get("type", "access"),
            exp=payload["exp"],
            iat=payload["iat"],
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired") from None
    except (jwt.InvalidTokenError, KeyError) as e:
        raise TokenError(f"Invalid token: {e}") from None
