"""Slack Web API client for OAuth sign-in and integrations."""

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

logger = structlog.get_logger()

SLACK_AUTHORIZE_URL = "https://slack.com/oauth/authorize"
SLACK_API_URL = "https://slack.com/api"

# Scopes requested when signing in with Slack
IDENTITY_SCOPES = [
    "identity.email",
    "identity.basic",
    "identity.avatar",
    "identity.team",
]


class SlackAPIError(Exception):
    """Raised when Slack answers with ``ok: false``.

    Attributes:
        error: Slack's error code, e.g. ``invalid_code``.
    """

    def __init__(self, error: str) -> None:
        """Initialize SlackAPIError.

        Args:
            error: Slack's error code.
        """
        super().__init__(f"Slack API error: {error}")
        self.error = error


@dataclass
class SlackConfig:
    """Slack app configuration."""

    client_id: str
    client_secret: str
    provider_name: str = "slack"
    timeout_seconds: int = 30


@dataclass
class IncomingWebhook:
    """Channel webhook granted by the ``incoming-webhook`` scope."""

    url: str
    channel: str
    channel_id: str


@dataclass
class SlackOAuthAccess:
    """Result of exchanging an authorization code."""

    access_token: str
    scopes: list[str]
    team_id: str | None = None
    expires_in: int | None = None
    refresh_token: str | None = None
    incoming_webhook: IncomingWebhook | None = None


@dataclass
class SlackIdentity:
    """The signed-in Slack user and workspace."""

    team_id: str
    team_name: str
    team_domain: str
    user_id: str
    user_name: str
    user_email: str | None = None
    team_image: str | None = None
    user_image: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


class SlackClient:
    """Client for the handful of Slack endpoints the auth routes need.

    The provider name recorded on authentication providers comes from
    ``SlackConfig.provider_name``.
    """

    def __init__(
        self,
        config: SlackConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Slack app configuration.
            transport: Optional httpx transport, used by tests.
        """
        self.config = config
        self._transport = transport

    @property
    def provider_name(self) -> str:
        """Name recorded on authentication providers."""
        return self.config.provider_name

    def authorize_url(self, redirect_uri: str, state: str, scopes: list[str] | None = None) -> str:
        """Build the URL that sends the user to Slack's consent screen.

        Args:
            redirect_uri: Callback URL registered with the Slack app.
            state: Opaque value echoed back on the callback.
            scopes: Scopes to request; defaults to the sign-in scopes.

        Returns:
            Authorization URL.
        """
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(scopes or IDENTITY_SCOPES),
            "state": state,
        }
        return f"{SLACK_AUTHORIZE_URL}?{urlencode(params)}"

    async def _call(
        self,
        method: str,
        data: dict[str, str] | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        """Call a Web API method and return the parsed body.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response.
            SlackAPIError: When Slack reports ``ok: false``.
        """
        headers = {"Authorization": f"Bearer {token}"} if token else None
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self.config.timeout_seconds,
        ) as client:
            response = await client.post(f"{SLACK_API_URL}/{method}", data=data, headers=headers)
            response.raise_for_status()
            body: dict[str, Any] = response.json()

        if not body.get("ok"):
            error = body.get("error", "unknown_error")
            logger.warning("slack_api_error", method=method, error=error)
            raise SlackAPIError(error)

        return body

    async def oauth_access(self, code: str, redirect_uri: str) -> SlackOAuthAccess:
        """Exchange an authorization code for a token.

        Args:
            code: Authorization code from the callback.
            redirect_uri: The redirect URI used for the authorization request.

        Returns:
            Token, scopes and any channel webhook that was granted.
        """
        body = await self._call(
            "oauth.access",
            data={
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )

        webhook = body.get("incoming_webhook")
        team = body.get("team") or {}
        return SlackOAuthAccess(
            access_token=body["access_token"],
            scopes=[s for s in body.get("scope", "").split(",") if s],
            team_id=body.get("team_id") or team.get("id"),
            expires_in=body.get("expires_in"),
            refresh_token=body.get("refresh_token"),
            incoming_webhook=(
                IncomingWebhook(
                    url=webhook["url"],
                    channel=webhook["channel"],
                    channel_id=webhook["channel_id"],
                )
                if webhook
                else None
            ),
        )

    async def users_identity(self, access_token: str) -> SlackIdentity:
        """Fetch the signed-in user and workspace.

        Args:
            access_token: User token with identity scopes.

        Returns:
            Identity of the user and their workspace.
        """
        body = await self._call("users.identity", token=access_token)
        team = body["team"]
        user = body["user"]
        return SlackIdentity(
            team_id=team["id"],
            team_name=team["name"],
            team_domain=team.get("domain", ""),
            team_image=team.get("image_230"),
            user_id=user["id"],
            user_name=user["name"],
            user_email=user.get("email"),
            user_image=user.get("image_192"),
            raw=body,
        )
