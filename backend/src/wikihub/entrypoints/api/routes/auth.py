"""Session hand-off from the root domain to a team's own URL."""

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from wikihub.core.auth.jwt import TokenError, create_access_token, decode_token

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])


class TransferRequest(BaseModel):
    """Transfer token exchange request body."""

    token: str


class TokenResponse(BaseModel):
    """Token response."""

    access_token: str
    token_type: str = "bearer"
    team_id: str
    role: str


@router.post("/token", response_model=TokenResponse)
async def exchange_transfer_token(body: TransferRequest) -> TokenResponse:
    """Exchange a sign-in transfer token for an access token.

    The page served at ``/auth/redirect`` on the team's URL posts the
    token it was handed by the sign-in callback.

    Args:
        body: The transfer token.

    Returns:
        Access token for the same user, team and role.
    """
    try:
        payload = decode_token(body.token)
    except TokenError as e:
        logger.warning("transfer_token_rejected", error=str(e))
        raise HTTPException(status_code=401, detail=str(e)) from None

    if payload.type != "transfer":
        raise HTTPException(status_code=401, detail="Not a transfer token")

    logger.info("transfer_token_exchanged", user_id=payload.sub, team_id=payload.team_id)
    return TokenResponse(
        access_token=create_access_token(
            user_id=payload.sub,
            team_id=payload.team_id,
            role=payload.role,
        ),
        team_id=payload.team_id,
        role=payload.role,
    )
