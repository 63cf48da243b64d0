"""Slack adapters."""

from wikihub.adapters.slack.client import (
    IDENTITY_SCOPES,
    IncomingWebhook,
    SlackAPIError,
    SlackClient,
    SlackConfig,
    SlackIdentity,
    SlackOAuthAccess,
)

__all__ = [
    "IDENTITY_SCOPES",
    "IncomingWebhook",
    "SlackAPIError",
    "SlackClient",
    "SlackConfig",
    "SlackIdentity",
    "SlackOAuthAccess",
]
