"""Tests for the Streamlit HTTP client with a mocked requests session."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from streamlit_ui.api_client import ConversationApiClient, ConversationApiError


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body if body is not None else {}
    resp.text = str(body)
    return resp


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def api(http):
    return ConversationApiClient("http://api:8000/", timeout=5, session=http)


class TestRequest:
    def test_unwraps_data(self, api, http):
        http.request.return_value = _response(body={"data": {"count": 2}, "status": "ok"})

        assert api.get_session_count("c1") == 2
        http.request.assert_called_once_with(
            "GET",
            "http://api:8000/api/v1/chat/sessions/count",
            timeout=5,
            params={"clientId": "c1"},
        )

    def test_connection_error(self, api, http):
        http.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ConversationApiError, match="Failed to reach API"):
            api.get_sessions("c1")

    def test_error_status_carries_detail(self, api, http):
        http.request.return_value = _response(404, {"detail": "Chat session not found"})

        with pytest.raises(ConversationApiError) as exc_info:
            api.delete_session("s1")

        assert exc_info.value.status_code == 404
        assert "Chat session not found" in str(exc_info.value)

    def test_missing_data_is_malformed(self, api, http):
        http.request.return_value = _response(body={"status": "ok"})

        with pytest.raises(ConversationApiError, match="Malformed"):
            api.get_sessions("c1")


class TestOperations:
    def test_send_message_payload(self, api, http):
        http.request.return_value = _response(
            body={"data": {"content": "Hi", "userMessageId": "u", "aiMessageId": "a"}}
        )
        ts = datetime(2025, 10, 19, 12, 0, tzinfo=timezone.utc)

        result = api.send_message(
            client_id="c1", session_id="s1", content="Hello", message_id="m1", timestamp=ts
        )

        assert result["aiMessageId"] == "a"
        method, url = http.request.call_args.args
        assert (method, url) == ("POST", "http://api:8000/api/v1/chat/messages")
        assert http.request.call_args.kwargs["json"] == {
            "id": "m1",
            "clientId": "c1",
            "sessionId": "s1",
            "role": "user",
            "content": "Hello",
            "timestamp": ts.isoformat(),
        }

    def test_paginated_messages_params(self, api, http):
        http.request.return_value = _response(body={"data": {"messages": []}})

        api.get_paginated_messages("s1", limit=20, cursor="m5")

        assert http.request.call_args.kwargs["params"] == {"limit": 20, "cursor": "m5"}

    def test_get_sessions_returns_list(self, api, http):
        http.request.return_value = _response(
            body={"data": {"sessions": [{"sessionId": "s1"}], "total": 1}}
        )

        assert api.get_sessions("c1") == [{"sessionId": "s1"}]

    def test_clear_all_returns_deleted_count(self, api, http):
        http.request.return_value = _response(
            body={"data": {"success": True, "deletedCount": 3}}
        )

        assert api.clear_all_sessions("c1") == 3
        assert http.request.call_args.args[0] == "DELETE"

    def test_update_activity_payload(self, api, http):
        http.request.return_value = _response(body={"data": {"isActive": False}})

        api.update_session_activity("s1", False)

        assert http.request.call_args.args == (
            "PATCH",
            "http://api:8000/api/v1/chat/sessions/s1/activity",
        )
        assert http.request.call_args.kwargs["json"] == {"isActive": False}
