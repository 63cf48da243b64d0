"""JWT authentication middleware."""

from dataclasses import dataclass
from uuid import UUID

import structlog
from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wikihub.core.auth.jwt import TokenError, decode_token
from wikihub.core.provisioning.types import UserRole

logger = structlog.get_logger()

# Use Bearer token authentication
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class JwtContext:
    """Context from a verified JWT token."""

    user_id: str
    team_id: str
    role: UserRole

    @property
    def user_uuid(self) -> UUID:
        """Get user ID as UUID."""
        return UUID(self.user_id)

    @property
    def team_uuid(self) -> UUID:
        """Get team ID as UUID."""
        return UUID(self.team_id)


async def verify_jwt(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> JwtContext:
    """Verify JWT token and return context.

    Transfer tokens are rejected here; they are only good for starting
    a session on a team's own URL.

    Args:
        request: The current request.
        credentials: Bearer token credentials.

    Returns:
        JwtContext with user info.

    Raises:
        HTTPException: 401 if token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_token(credentials.credentials)
    except TokenError as e:
        logger.warning("jwt_validation_failed", error=str(e))
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    if payload.type != "access" or payload.role not in {r.value for r in UserRole}:
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    context = JwtContext(
        user_id=payload.sub,
        team_id=payload.team_id,
        role=UserRole(payload.role),
    )

    # Store in request state for downstream use
    request.state.user = context

    logger.debug("jwt_verified", user_id=context.user_id, team_id=context.team_id)

    return context


# Optional JWT - returns None if no token provided
async def optional_jwt(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> JwtContext | None:
    """Optionally verify JWT, returning None if not provided."""
    if not credentials:
        return None

    try:
        return await verify_jwt(request, credentials)
    except HTTPException:
        return None
