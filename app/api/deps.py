from app.config import Settings
from app.services.stream_chat import StreamChatClient
from app.services.zendesk import ZendeskClient

# -------------------------------------------------------------------------
# Container-based Dependencies
# -------------------------------------------------------------------------
# Handlers call these after request validation so that a missing field is
# reported as 400 before credentials are looked at. Override the container
# providers to swap in fakes.


def get_settings() -> Settings:
    """Get settings from container."""
    from app.container import container
    return container.settings()


def get_stream_client() -> StreamChatClient:
    """Get a Stream Chat client; raises ConfigurationError when unconfigured."""
    from app.container import container
    return container.stream_client()


def get_zendesk_client() -> ZendeskClient:
    """Get a Zendesk client; raises ConfigurationError when unconfigured."""
    from app.container import container
    return container.zendesk_client()
