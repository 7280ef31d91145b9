"""Dependency injection container.

Holds the settings object and the factories for the two provider clients so
route handlers never build clients themselves.

Usage:
    from app.container import container

    client = container.stream_client()

    # In tests
    with container.stream_client.override(providers.Object(FakeStreamChat())):
        response = client.post("/api/token", ...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dependency_injector import containers, providers  # type: ignore[import-not-found]

from app.config import settings as default_settings
from app.errors import ConfigurationError

if TYPE_CHECKING:
    from app.config import Settings
    from app.services.stream_chat import StreamChatClient
    from app.services.zendesk import ZendeskClient


def _stream_client_factory(settings: "Settings") -> "StreamChatClient":
    from app.services.stream_chat import StreamChatClient

    if not settings.stream_configured:
        raise ConfigurationError(
            "stream_not_configured",
            "Stream Chat credentials not configured. Set STREAM_API_KEY and STREAM_API_SECRET.",
        )
    return StreamChatClient(
        api_key=settings.stream_api_key,
        api_secret=settings.stream_api_secret,
        base_url=settings.stream_base_url,
        timeout=settings.provider_timeout_seconds,
    )


def _zendesk_client_factory(settings: "Settings") -> "ZendeskClient":
    from app.services.zendesk import ZendeskClient

    if not settings.zendesk_configured:
        raise ConfigurationError(
            "zendesk_not_configured",
            "Zendesk credentials not configured. Set ZENDESK_SUBDOMAIN, ZENDESK_EMAIL, and ZENDESK_API_TOKEN.",
        )
    return ZendeskClient(
        subdomain=settings.zendesk_subdomain,
        email=settings.zendesk_email,
        api_token=settings.zendesk_api_token,
        timeout=settings.provider_timeout_seconds,
    )


class Container(containers.DeclarativeContainer):
    settings = providers.Object(default_settings)

    stream_client = providers.Factory(_stream_client_factory, settings=settings)
    zendesk_client = providers.Factory(_zendesk_client_factory, settings=settings)


container = Container()
