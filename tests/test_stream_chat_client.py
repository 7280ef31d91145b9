from unittest.mock import MagicMock, patch

import httpx
import pytest
from jose import jwt

from app.services.stream_chat import StreamChatClient, StreamChatError


def _client() -> StreamChatClient:
    return StreamChatClient(api_key="key", api_secret="secret", base_url="https://chat.example.test/")


def _mock_http(response):
    client_cm = MagicMock()
    client_cm.__enter__.return_value.request.return_value = response
    return client_cm


def _ok_response(payload):
    response = MagicMock()
    response.status_code = 200
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


def test_create_user_token_is_signed_with_api_secret():
    token = _client().create_user_token("buyer_1")

    claims = jwt.decode(token, "secret", algorithms=["HS256"])
    assert claims == {"user_id": "buyer_1"}


def test_requests_carry_server_auth_and_api_key():
    client_cm = _mock_http(_ok_response({"users": {"buyer_1": {"id": "buyer_1"}}}))

    with patch("app.services.stream_chat.httpx.Client", return_value=client_cm):
        result = _client().upsert_user({"id": "buyer_1", "name": "Buyer"})

    assert result == {"id": "buyer_1"}
    call = client_cm.__enter__.return_value.request.call_args
    assert call.args == ("POST", "https://chat.example.test/users")
    assert call.kwargs["params"] == {"api_key": "key"}
    assert call.kwargs["json"] == {"users": {"buyer_1": {"id": "buyer_1", "name": "Buyer"}}}
    headers = call.kwargs["headers"]
    assert headers["stream-auth-type"] == "jwt"
    assert jwt.decode(headers["Authorization"], "secret", algorithms=["HS256"]) == {"server": True}


def test_get_or_create_channel_requests_message_window():
    client_cm = _mock_http(_ok_response({"channel": {"id": "c1"}, "messages": []}))

    with patch("app.services.stream_chat.httpx.Client", return_value=client_cm):
        _client().get_or_create_channel("messaging", "c1", data={"name": "x"}, message_limit=50)

    call = client_cm.__enter__.return_value.request.call_args
    assert call.args[1].endswith("/channels/messaging/c1/query")
    assert call.kwargs["json"]["messages"] == {"limit": 50}
    assert call.kwargs["json"]["data"] == {"name": "x"}


def test_update_channel_partial_sends_set_only_fields():
    client_cm = _mock_http(_ok_response({"channel": {"id": "c1", "ticketId": "7"}}))

    with patch("app.services.stream_chat.httpx.Client", return_value=client_cm):
        _client().update_channel_partial("messaging", "c1", set_fields={"ticketId": "7"})

    call = client_cm.__enter__.return_value.request.call_args
    assert call.args[0] == "PATCH"
    assert call.kwargs["json"] == {"set": {"ticketId": "7"}, "unset": []}


def test_http_error_is_wrapped_with_status_and_message():
    request = httpx.Request("POST", "https://chat.example.test/users")
    error_response = httpx.Response(403, json={"message": "api key not valid"}, request=request)
    response = MagicMock()
    response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "forbidden", request=request, response=error_response
    )

    with (
        patch("app.services.stream_chat.httpx.Client", return_value=_mock_http(response)),
        pytest.raises(StreamChatError) as excinfo,
    ):
        _client().upsert_users([{"id": "u"}])

    assert excinfo.value.status_code == 403
    assert "api key not valid" in excinfo.value.message


def test_transport_error_is_wrapped():
    client_cm = MagicMock()
    client_cm.__enter__.return_value.request.side_effect = httpx.ConnectError("boom")

    with (
        patch("app.services.stream_chat.httpx.Client", return_value=client_cm),
        pytest.raises(StreamChatError) as excinfo,
    ):
        _client().query_channels({"ticketId": "1"})

    assert excinfo.value.status_code is None
