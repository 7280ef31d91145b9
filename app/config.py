import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    # Stream Chat
    stream_api_key: str | None = os.getenv("STREAM_API_KEY")
    stream_api_secret: str | None = os.getenv("STREAM_API_SECRET")
    stream_base_url: str = os.getenv("STREAM_BASE_URL", "https://chat.stream-io-api.com")

    # Zendesk Support
    zendesk_subdomain: str | None = os.getenv("ZENDESK_SUBDOMAIN")
    zendesk_email: str | None = os.getenv("ZENDESK_EMAIL")
    zendesk_api_token: str | None = os.getenv("ZENDESK_API_TOKEN")
    zendesk_webhook_secret: str | None = os.getenv("ZENDESK_WEBHOOK_SECRET")
    zendesk_channel_field_id: str | None = os.getenv("ZENDESK_CHANNEL_FIELD_ID")

    # Support identity
    support_agent_id: str | None = os.getenv("SUPPORT_AGENT_ID")
    support_agent_name: str = os.getenv("SUPPORT_AGENT_NAME", "Support Agent")
    support_fallback_agent_id: str = os.getenv("SUPPORT_FALLBACK_AGENT_ID", "support_1")

    # Marketplace
    marketplace_name: str = os.getenv("MARKETPLACE_NAME", "StreamBay")
    transcript_message_limit: int = int(os.getenv("TRANSCRIPT_MESSAGE_LIMIT", "50"))

    # Outbound HTTP
    provider_timeout_seconds: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "30"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "text")

    @property
    def stream_configured(self) -> bool:
        return bool(self.stream_api_key and self.stream_api_secret)

    @property
    def zendesk_configured(self) -> bool:
        return bool(self.zendesk_subdomain and self.zendesk_email and self.zendesk_api_token)


settings = Settings()
