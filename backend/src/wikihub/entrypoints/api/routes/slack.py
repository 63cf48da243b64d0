"""Sign in with Slack and Slack integration endpoints."""

from typing import Annotated
from urllib.parse import quote, urlsplit
from uuid import UUID

import httpx
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from wikihub.adapters.slack.client import SlackAPIError, SlackClient
from wikihub.core.auth.jwt import create_transfer_token
from wikihub.core.exceptions import ValidationError, WikihubError
from wikihub.core.integrations.types import IntegrationRepository, IntegrationType
from wikihub.core.provisioning.account_provisioner import AccountProvisioner
from wikihub.core.provisioning.repository import ProvisioningRepository
from wikihub.core.provisioning.subdomains import normalize_subdomain, team_url
from wikihub.core.provisioning.types import (
    AuthenticationParams,
    AuthenticationProviderParams,
    DeploymentMode,
    ProvisionRequest,
    Team,
    TeamParams,
    UserParams,
)
from wikihub.entrypoints.api.deps import (
    Settings,
    get_account_provisioner,
    get_integration_repo,
    get_provisioning_repo,
    get_settings,
    get_slack_client,
    get_state_store,
)
from wikihub.entrypoints.api.middleware.jwt_auth import JwtContext, optional_jwt
from wikihub.entrypoints.api.oauth_state import OAuthStateStore

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["slack"])

SERVICE = "slack"
INTEGRATION_SETTINGS_PATH = "/settings/integrations/slack"
POST_EVENTS = ["documents.update", "documents.publish"]


def _signin_error(notice: str) -> RedirectResponse:
    """Send the browser home with a sign-in notice."""
    return RedirectResponse(f"/?notice={quote(notice)}", status_code=302)


def _integration_redirect(error: str | None = None) -> RedirectResponse:
    """Send the browser to the Slack integration settings page."""
    url = INTEGRATION_SETTINGS_PATH
    if error:
        url = f"{url}?error={quote(error)}"
    return RedirectResponse(url, status_code=302)


def _parse_uuid(value: str | None, message: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(message) from None


def _team_url(team: Team, settings: Settings) -> str:
    return team_url(team, settings.url, settings.deployment, settings.subdomains_enabled)


def _forward_to_team(request: Request, team: Team, settings: Settings) -> RedirectResponse:
    """Repeat the callback on the team's own URL.

    The root domain cannot read a session that lives on a team subdomain,
    so the OAuth flow is completed there instead. A request already on
    the team's host has no session to find, so it is not forwarded.
    """
    target = _team_url(team, settings)
    if request.url.hostname == urlsplit(target).hostname:
        return _integration_redirect("unauthenticated")

    url = f"{target}{request.url.path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return RedirectResponse(url, status_code=302)


async def _get_team_from_request(
    request: Request,
    repo: ProvisioningRepository,
    settings: Settings,
) -> Team | None:
    """Find the team whose subdomain the request was made on."""
    if settings.deployment is not DeploymentMode.MULTI_TENANT or not settings.subdomains_enabled:
        return None

    host = request.url.hostname or ""
    base_host = urlsplit(settings.url).hostname or ""
    if not host.endswith(f".{base_host}") and base_host.count(".") >= 2:
        base_host = base_host.split(".", 1)[1]
    if not host.endswith(f".{base_host}"):
        return None

    subdomain = host[: -len(base_host) - 1]
    if not subdomain or "." in subdomain:
        return None
    return await repo.get_team_by_subdomain(subdomain)


@router.get("/slack")
async def slack_signin(
    request: Request,
    slack: Annotated[SlackClient, Depends(get_slack_client)],
    repo: Annotated[ProvisioningRepository, Depends(get_provisioning_repo)],
    settings: Annotated[Settings, Depends(get_settings)],
    state_store: Annotated[OAuthStateStore, Depends(get_state_store)],
) -> RedirectResponse:
    """Redirect to Slack to sign in.

    The team the request was made on, if any, travels in the OAuth state
    so that the callback signs into that team.
    """
    team = await _get_team_from_request(request, repo, settings)
    state = state_store.generate({"team_id": str(team.id) if team else ""})
    url = slack.authorize_url(redirect_uri=f"{settings.url}/auth/slack.callback", state=state)
    return RedirectResponse(url, status_code=302)


@router.get("/slack.callback")
async def slack_callback(
    request: Request,
    slack: Annotated[SlackClient, Depends(get_slack_client)],
    provisioner: Annotated[AccountProvisioner, Depends(get_account_provisioner)],
    settings: Annotated[Settings, Depends(get_settings)],
    state_store: Annotated[OAuthStateStore, Depends(get_state_store)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Complete sign in with Slack.

    Provisions the team, provider and user, then hands a transfer token
    to the team's own URL, which starts the session.
    """
    if error:
        logger.info("slack_signin_denied", error=error)
        return _signin_error("auth-error")

    state_data = state_store.consume(state) if state else None
    if state_data is None:
        logger.warning("slack_signin_invalid_state")
        return _signin_error("auth-error")
    if not code:
        return _signin_error(ValidationError.notice)

    redirect_uri = f"{settings.url}/auth/slack.callback"
    try:
        access = await slack.oauth_access(code, redirect_uri)
        identity = await slack.users_identity(access.access_token)
    except (SlackAPIError, httpx.HTTPError) as e:
        logger.warning("slack_signin_failed", error=str(e))
        return _signin_error("auth-error")

    team_id = state_data.get("team_id")
    try:
        result = await provisioner.provision(
            ProvisionRequest(
                ip=request.client.host if request.client else None,
                team=TeamParams(
                    id=UUID(team_id) if team_id else None,
                    name=identity.team_name,
                    subdomain=normalize_subdomain(identity.team_domain or identity.team_name),
                    avatar_url=identity.team_image,
                ),
                user=UserParams(
                    name=identity.user_name,
                    email=identity.user_email,
                    avatar_url=identity.user_image,
                ),
                authentication_provider=AuthenticationProviderParams(
                    name=slack.provider_name,
                    provider_id=identity.team_id,
                ),
                authentication=AuthenticationParams(
                    provider_id=identity.user_id,
                    access_token=access.access_token,
                    refresh_token=access.refresh_token,
                    expires_in=access.expires_in,
                    scopes=access.scopes,
                ),
            )
        )
    except WikihubError as e:
        logger.warning("slack_signin_provisioning_failed", error=str(e), notice=e.notice)
        return _signin_error(e.notice)

    token = create_transfer_token(
        user_id=str(result.user.id),
        team_id=str(result.team.id),
        role=result.user.role.value,
    )
    return RedirectResponse(
        f"{_team_url(result.team, settings)}/auth/redirect?token={token}",
        status_code=302,
    )


@router.get("/slack.commands")
async def slack_commands(
    request: Request,
    auth: Annotated[JwtContext | None, Depends(optional_jwt)],
    slack: Annotated[SlackClient, Depends(get_slack_client)],
    repo: Annotated[ProvisioningRepository, Depends(get_provisioning_repo)],
    integrations: Annotated[IntegrationRepository, Depends(get_integration_repo)],
    settings: Annotated[Settings, Depends(get_settings)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Connect Slack slash commands to the signed-in user's team.

    ``state`` carries the team ID so that a callback landing on the root
    domain can be forwarded to the team's URL.
    """
    if error:
        return _integration_redirect(error)
    if not code:
        return _integration_redirect(ValidationError.notice)

    if auth is None:
        if not state:
            return _integration_redirect("unauthenticated")
        try:
            team = await repo.get_team(_parse_uuid(state, "state must be a team id"))
        except ValidationError:
            team = None
        if team is None:
            return _integration_redirect("unauthenticated")
        return _forward_to_team(request, team, settings)

    try:
        access = await slack.oauth_access(code, f"{settings.url}/auth/slack.commands")
    except (SlackAPIError, httpx.HTTPError) as e:
        logger.warning("slack_commands_oauth_failed", error=str(e))
        return _integration_redirect(e.error if isinstance(e, SlackAPIError) else "slack_unavailable")

    authentication = await integrations.create_integration_authentication(
        service=SERVICE,
        user_id=auth.user_uuid,
        team_id=auth.team_uuid,
        token=access.access_token,
        scopes=access.scopes,
    )
    await integrations.create_integration(
        service=SERVICE,
        type=IntegrationType.COMMAND,
        user_id=auth.user_uuid,
        team_id=auth.team_uuid,
        authentication_id=authentication.id,
        settings={"serviceTeamId": access.team_id},
    )
    return _integration_redirect()


@router.get("/slack.post")
async def slack_post(
    request: Request,
    auth: Annotated[JwtContext | None, Depends(optional_jwt)],
    slack: Annotated[SlackClient, Depends(get_slack_client)],
    repo: Annotated[ProvisioningRepository, Depends(get_provisioning_repo)],
    integrations: Annotated[IntegrationRepository, Depends(get_integration_repo)],
    settings: Annotated[Settings, Depends(get_settings)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Post document events of a collection into a Slack channel.

    ``state`` carries the collection ID.
    """
    if not code and not error:
        return _integration_redirect(ValidationError.notice)
    try:
        collection_id = _parse_uuid(state, "collectionId must be an uuid")
    except ValidationError as e:
        return _integration_redirect(e.notice)

    if error or not code:
        return _integration_redirect(error or ValidationError.notice)

    collection = await integrations.get_collection(collection_id)

    if auth is None:
        team = await repo.get_team(collection.team_id) if collection else None
        if team is None:
            return _integration_redirect("unauthenticated")
        return _forward_to_team(request, team, settings)

    if collection is None or collection.team_id != auth.team_uuid:
        return _integration_redirect("not_found")

    try:
        access = await slack.oauth_access(code, f"{settings.url}/auth/slack.post")
    except (SlackAPIError, httpx.HTTPError) as e:
        logger.warning("slack_post_oauth_failed", error=str(e))
        return _integration_redirect(e.error if isinstance(e, SlackAPIError) else "slack_unavailable")

    webhook = access.incoming_webhook
    if webhook is None:
        return _integration_redirect(ValidationError.notice)

    authentication = await integrations.create_integration_authentication(
        service=SERVICE,
        user_id=auth.user_uuid,
        team_id=auth.team_uuid,
        token=access.access_token,
        scopes=access.scopes,
    )
    await integrations.create_integration(
        service=SERVICE,
        type=IntegrationType.POST,
        user_id=auth.user_uuid,
        team_id=auth.team_uuid,
        authentication_id=authentication.id,
        collection_id=collection_id,
        events=POST_EVENTS,
        settings={
            "url": webhook.url,
            "channel": webhook.channel,
            "channelId": webhook.channel_id,
        },
    )
    return _integration_redirect()
