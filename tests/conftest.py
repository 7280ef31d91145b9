import os
import re
from itertools import count

import pytest
from dependency_injector import providers
from dotenv import load_dotenv
from fastapi.testclient import TestClient

from app.config import Settings
from app.services.stream_chat import StreamChatError
from app.services.zendesk import ZendeskError

load_dotenv(os.path.join(os.getcwd(), ".env"))


def make_settings(**overrides) -> Settings:
    """Settings with every provider configured; override fields per test."""
    values = {
        "stream_api_key": "stream-key",
        "stream_api_secret": "stream-secret",
        "stream_base_url": "https://chat.example.test",
        "zendesk_subdomain": "acme",
        "zendesk_email": "agent@example.com",
        "zendesk_api_token": "zd-token",
        "zendesk_webhook_secret": "hook-secret",
        "zendesk_channel_field_id": None,
        "support_agent_id": "support_agent",
        "support_agent_name": "Support Agent",
        "support_fallback_agent_id": "support_1",
        "marketplace_name": "StreamBay",
        "transcript_message_limit": 50,
        "provider_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


class FakeStreamChat:
    """In-memory stand-in for StreamChatClient."""

    api_key = "stream-key"

    def __init__(self):
        self.users: dict[str, dict] = {}
        self.channels: dict[str, dict] = {}
        self.sent: list[tuple[str, str, str]] = []
        self.fail_add_members = False
        self.fail_upsert = False

    def create_user_token(self, user_id, exp=None):
        return f"token-for-{user_id}"

    def upsert_users(self, users):
        if self.fail_upsert:
            raise StreamChatError("user upsert rejected", status_code=403)
        for user in users:
            self.users[user["id"]] = dict(user)
        return {user["id"]: user for user in users}

    def upsert_user(self, user):
        return self.upsert_users([user])[user["id"]]

    def _state(self, channel_id):
        channel = self.channels[channel_id]
        return {
            "channel": {"id": channel_id, "type": "messaging", **channel["data"]},
            "members": [{"user_id": member} for member in channel["members"]],
            "messages": list(channel["messages"]),
        }

    def get_or_create_channel(self, channel_type, channel_id, data=None, message_limit=None):
        if channel_id not in self.channels:
            data = dict(data or {})
            members = data.pop("members", [])
            self.channels[channel_id] = {"data": data, "members": list(members), "messages": []}
        state = self._state(channel_id)
        if message_limit is not None:
            state["messages"] = state["messages"][-message_limit:]
        return state

    def add_members(self, channel_type, channel_id, user_ids):
        if self.fail_add_members:
            raise StreamChatError("cannot add members", status_code=400)
        members = self.channels[channel_id]["members"]
        for user_id in user_ids:
            if user_id not in members:
                members.append(user_id)
        return self._state(channel_id)

    def update_channel_partial(self, channel_type, channel_id, set_fields=None, unset_fields=None):
        self.channels[channel_id]["data"].update(set_fields or {})
        return self._state(channel_id)

    def query_channels(self, filter_conditions, limit=10):
        matches = []
        for channel_id, channel in self.channels.items():
            if all(channel["data"].get(key) == value for key, value in filter_conditions.items()):
                matches.append(self._state(channel_id))
        return matches[:limit]

    def send_message(self, channel_type, channel_id, text, user_id):
        message = {"id": f"msg-{len(self.sent) + 1}", "text": text, "user": {"id": user_id}}
        self.channels[channel_id]["messages"].append(message)
        self.sent.append((channel_id, user_id, text))
        return message

    def seed_channel(self, channel_id, data=None, members=None, messages=None):
        self.channels[channel_id] = {
            "data": dict(data or {}),
            "members": list(members or []),
            "messages": list(messages or []),
        }


_TAG_RE = re.compile(r"tags:(\S+)")


class FakeZendesk:
    """In-memory stand-in for ZendeskClient.

    Like the real search, repeated ``tags:`` terms match tickets carrying any
    of the tags. ``status<solved`` is honoured.
    """

    subdomain = "acme"

    def __init__(self):
        self.tickets: dict[int, dict] = {}
        self.comments: dict[int, list[dict]] = {}
        self.created: list[dict] = []
        self.searches: list[str] = []
        self.search_error: ZendeskError | None = None
        self.create_error: ZendeskError | None = None
        self.before_create = None
        self._ids = count(1)
        self._comment_ids = count(1000)

    def ticket_url(self, ticket_id):
        return f"https://acme.zendesk.com/agent/tickets/{ticket_id}"

    def search(self, query, sort_by=None, sort_order=None):
        self.searches.append(query)
        if self.search_error is not None:
            raise self.search_error
        tags = set(_TAG_RE.findall(query))
        unsolved_only = "status<solved" in query
        results = []
        for ticket in self.tickets.values():
            if unsolved_only and ticket["status"] in ("solved", "closed"):
                continue
            if tags and not tags & set(ticket.get("tags", [])):
                continue
            results.append({"result_type": "ticket", **ticket})
        return results

    def create_ticket(self, ticket):
        if self.before_create is not None:
            self.before_create()
        if self.create_error is not None:
            raise self.create_error
        ticket_id = next(self._ids)
        stored = {
            "id": ticket_id,
            "subject": ticket.get("subject"),
            "description": (ticket.get("comment") or {}).get("body"),
            "status": ticket.get("status", "new"),
            "priority": ticket.get("priority"),
            "tags": list(ticket.get("tags", [])),
            "requester_id": 500,
            "created_at": "2024-05-01T10:00:00Z",
            "updated_at": "2024-05-01T10:00:00Z",
        }
        self.tickets[ticket_id] = stored
        self.comments[ticket_id] = [
            {"id": next(self._comment_ids), "body": stored["description"], "author_id": 500, "public": True}
        ]
        self.created.append(ticket)
        return dict(stored)

    def seed_ticket(self, ticket_id, tags, status="open", updated_at="2024-05-01T10:00:00Z"):
        self.tickets[ticket_id] = {
            "id": ticket_id,
            "subject": f"Ticket {ticket_id}",
            "description": "seeded",
            "status": status,
            "priority": "normal",
            "tags": list(tags),
            "requester_id": 500,
            "created_at": "2024-05-01T09:00:00Z",
            "updated_at": updated_at,
        }
        self.comments.setdefault(ticket_id, [])

    def get_ticket(self, ticket_id):
        ticket = self.tickets.get(int(ticket_id))
        if ticket is None:
            raise ZendeskError("Zendesk API error: 404", status_code=404)
        return dict(ticket)

    def add_comment(self, ticket_id, body, public=True):
        if int(ticket_id) not in self.tickets:
            raise ZendeskError("Zendesk API error: 404", status_code=404)
        comment_id = next(self._comment_ids)
        self.comments[int(ticket_id)].append({"id": comment_id, "body": body, "author_id": 900, "public": public})
        return comment_id

    def list_comments(self, ticket_id):
        if int(ticket_id) not in self.tickets:
            raise ZendeskError("Zendesk API error: 404", status_code=404)
        return [dict(c) for c in self.comments[int(ticket_id)]]


@pytest.fixture()
def settings():
    return make_settings()


@pytest.fixture()
def fake_chat():
    return FakeStreamChat()


@pytest.fixture()
def fake_zendesk():
    return FakeZendesk()


@pytest.fixture()
def container_overrides(settings, fake_chat, fake_zendesk):
    """Point the DI container at the test settings and in-memory providers."""
    from app.container import container

    with (
        container.settings.override(providers.Object(settings)),
        container.stream_client.override(providers.Object(fake_chat)),
        container.zendesk_client.override(providers.Object(fake_zendesk)),
    ):
        yield container


@pytest.fixture()
def client(container_overrides):
    """Test client wired to the fake providers."""
    from app.main import app

    return TestClient(app)
