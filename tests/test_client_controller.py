"""Tests for ClientConversationController against an in-memory fake API."""

from datetime import timedelta
from uuid import uuid4

import pytest

from api.shared.utils import utc_now
from streamlit_ui.api_client import ConversationApiError
from streamlit_ui.controller import (
    ERROR_REPLY,
    ClientConversationController,
    LoadStatus,
)
from streamlit_ui.identity import ClientIdentityStore
from tests.conftest import CLIENT_ID, FakeBrowserStorage


class FakeChatApi:
    """Just enough of the chat API, kept in memory, with switchable failures."""

    def __init__(self):
        self.sessions = {}
        self.messages = {}
        self.failing = set()
        self.calls = []
        self.reply = "Here is some career advice."
        self.clock_skew = timedelta(0)
        self.report_updated_at = True

    def server_now(self):
        return utc_now() + self.clock_skew

    def _check(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise ConversationApiError(f"{name} failed", status_code=500)

    def add_session(self, key, title, updated_at, count=0, client_id=CLIENT_ID):
        self.sessions[key] = {
            "sessionId": key,
            "clientId": client_id,
            "title": title,
            "updatedAt": updated_at.isoformat(),
            "isActive": True,
        }
        start = updated_at - timedelta(minutes=count)
        self.messages[key] = [
            {
                "id": str(uuid4()),
                "role": "user" if i % 2 == 0 else "assistant",
                "content": f"{key} message {i}",
                "timestamp": (start + timedelta(seconds=i)).isoformat(),
            }
            for i in range(count)
        ]

    def get_sessions(self, client_id):
        self._check("get_sessions")
        owned = [s for s in self.sessions.values() if s["clientId"] == client_id]
        return [dict(s, messages=self.messages[s["sessionId"]][-20:]) for s in owned]

    def get_paginated_messages(self, session_id, limit=None, cursor=None):
        self._check("get_paginated_messages")
        rows = self.messages[session_id]
        end = len(rows)
        if cursor:
            end = next(i for i, m in enumerate(rows) if m["id"] == cursor)
        limit = limit or 50
        start = max(0, end - limit)
        page = rows[start:end]
        has_next = start > 0
        return {
            "messages": page,
            "nextCursor": page[0]["id"] if has_next else None,
            "hasNextPage": has_next,
        }

    def send_message(self, *, client_id, session_id, content, message_id=None, timestamp=None):
        self._check("send_message")
        user_id = message_id or str(uuid4())
        ai_id = str(uuid4())
        touched = self.server_now()
        if session_id in self.sessions:
            self.sessions[session_id]["updatedAt"] = touched.isoformat()
        result = {"content": self.reply, "userMessageId": user_id, "aiMessageId": ai_id}
        if self.report_updated_at:
            result["updatedAt"] = touched.isoformat()
        return result

    def create_session(self, client_id, session_id, title):
        self._check("create_session")
        self.add_session(session_id, title, utc_now(), client_id=client_id)
        return dict(self.sessions[session_id], messages=[])

    def update_session_title(self, session_id, title):
        self._check("update_session_title")
        self.sessions[session_id].update(title=title, updatedAt=utc_now().isoformat())
        return self.sessions[session_id]

    def update_session_activity(self, session_id, is_active):
        self._check("update_session_activity")
        self.sessions[session_id]["isActive"] = is_active
        return self.sessions[session_id]

    def delete_session(self, session_id):
        self._check("delete_session")
        self.sessions.pop(session_id)
        return {"success": True, "sessionId": session_id}

    def get_session_count(self, client_id):
        self._check("get_session_count")
        return sum(1 for s in self.sessions.values() if s["clientId"] == client_id)

    def clear_all_sessions(self, client_id):
        self._check("clear_all_sessions")
        owned = [k for k, s in self.sessions.items() if s["clientId"] == client_id]
        for key in owned:
            self.sessions.pop(key)
        return len(owned)


@pytest.fixture
def api():
    return FakeChatApi()


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def controller(api, notifications):
    return ClientConversationController(
        api,
        CLIENT_ID,
        page_size=4,
        notify=lambda level, message: notifications.append((level, message)),
    )


class TestInitialize:
    def test_zero_sessions_creates_default_chat(self, controller, api):
        assert controller.initialize() is True

        assert len(controller.sessions) == 1
        current = controller.current_session
        assert current.title == "New Career Chat"
        assert current.messages == []
        assert current.status == LoadStatus.READY
        assert list(api.sessions) == [current.session_id]

    def test_selects_most_recently_updated(self, controller, api):
        now = utc_now()
        api.add_session("old", "Old chat", now - timedelta(days=1), count=2)
        api.add_session("new", "New chat", now, count=2)

        controller.initialize()

        assert [v.session_id for v in controller.sessions] == ["new", "old"]
        assert controller.current_key == "new"
        assert controller.current_session.status == LoadStatus.READY
        assert controller.find_session("old").status == LoadStatus.UNINITIALIZED

    def test_failed_load_returns_to_uninitialized(self, controller, api, notifications):
        api.failing.add("get_sessions")

        assert controller.initialize() is False

        assert controller.status == LoadStatus.UNINITIALIZED
        assert notifications and notifications[0][0] == "error"

    def test_first_page_sets_cursor(self, controller, api):
        api.add_session("s1", "Chat", utc_now(), count=10)

        controller.initialize()

        view = controller.current_session
        assert len(view.messages) == 4
        assert view.has_next_page is True
        assert view.next_cursor == view.messages[0].id

    def test_failed_first_page_leaves_session_uninitialized(self, controller, api):
        api.add_session("s1", "Chat", utc_now(), count=3)
        api.failing.add("get_paginated_messages")

        controller.initialize()

        assert controller.current_session.status == LoadStatus.UNINITIALIZED


class TestSendMessage:
    def test_success_appends_user_and_reply(self, controller, api):
        controller.initialize()

        assert controller.send_message("Hello there") is True

        messages = controller.current_session.messages
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[1].content == "Here is some career advice."
        assert not messages[0].pending
        assert controller.pending is False

    def test_optimistic_title_from_first_message(self, controller):
        controller.initialize()

        controller.send_message("How do I prepare for a behavioral interview at Amazon?")

        assert controller.current_session.title == "Interview Prep"

    def test_failure_keeps_user_message_and_appends_apology(self, controller, api):
        controller.initialize()
        api.failing.add("send_message")

        assert controller.send_message("Hello") is False

        messages = controller.current_session.messages
        assert [m.content for m in messages] == ["Hello", ERROR_REPLY]
        assert messages[1].role == "assistant"
        assert controller.pending is False

    def test_pending_blocks_second_send(self, controller, api):
        controller.initialize()
        controller.pending = True

        assert controller.send_message("Hello") is False

        assert controller.current_session.messages == []
        assert "send_message" not in api.calls

    def test_pending_is_set_during_call(self, controller, api):
        controller.initialize()
        seen = []
        original = api.send_message

        def spying_send(**kwargs):
            seen.append(controller.pending)
            # A re-entrant submit while in flight is ignored
            seen.append(controller.send_message("again"))
            return original(**kwargs)

        api.send_message = spying_send

        controller.send_message("Hello")

        assert seen == [True, False]
        assert [m.content for m in controller.current_session.messages].count("again") == 0

    @pytest.mark.parametrize("content", ["", "   "])
    def test_blank_content_ignored(self, controller, api, content):
        controller.initialize()

        assert controller.send_message(content) is False
        assert "send_message" not in api.calls

    def test_send_reorders_sessions(self, controller, api):
        now = utc_now()
        api.add_session("recent", "Recent", now)
        api.add_session("older", "Older", now - timedelta(hours=1))
        controller.initialize()
        controller.select_session("older")

        controller.send_message("Bump me")

        assert controller.sessions[0].session_id == "older"

    def test_send_reorders_when_server_clock_is_ahead(self, controller, api):
        api.clock_skew = timedelta(minutes=3)
        now = utc_now()
        api.add_session("recent", "Recent", now + timedelta(minutes=2))
        api.add_session("older", "Older", now + timedelta(minutes=1, seconds=30))
        controller.initialize()
        controller.select_session("older")

        controller.send_message("Bump me")

        assert [v.session_id for v in controller.sessions] == ["older", "recent"]

    def test_send_reorders_without_server_timestamp(self, controller, api):
        api.report_updated_at = False
        now = utc_now()
        api.add_session("recent", "Recent", now + timedelta(minutes=2))
        api.add_session("older", "Older", now + timedelta(minutes=1))
        controller.initialize()
        controller.select_session("older")

        controller.send_message("Bump me")

        assert [v.session_id for v in controller.sessions] == ["older", "recent"]

    def test_failure_restores_default_title(self, controller, api):
        controller.initialize()
        api.failing.add("send_message")

        controller.send_message("How do I prepare for a behavioral interview at Amazon?")

        assert controller.current_session.title == "New Career Chat"


class TestLoadOlderMessages:
    def test_prepends_older_page(self, controller, api):
        api.add_session("s1", "Chat", utc_now(), count=10)
        controller.initialize()

        assert controller.load_older_messages() is True

        view = controller.current_session
        assert [m.content for m in view.messages] == [
            f"s1 message {i}" for i in range(2, 10)
        ]
        assert view.fetching_older_page is False

    def test_reaches_the_start(self, controller, api):
        api.add_session("s1", "Chat", utc_now(), count=10)
        controller.initialize()

        while controller.load_older_messages():
            pass

        view = controller.current_session
        assert [m.content for m in view.messages] == [f"s1 message {i}" for i in range(10)]
        assert view.has_next_page is False
        assert len({m.id for m in view.messages}) == 10

    def test_no_fetch_without_next_page(self, controller, api):
        api.add_session("s1", "Chat", utc_now(), count=2)
        controller.initialize()
        calls = len(api.calls)

        assert controller.load_older_messages() is False
        assert len(api.calls) == calls

    def test_no_fetch_while_already_fetching(self, controller, api):
        api.add_session("s1", "Chat", utc_now(), count=10)
        controller.initialize()
        controller.current_session.fetching_older_page = True
        calls = len(api.calls)

        assert controller.load_older_messages() is False
        assert len(api.calls) == calls

    def test_no_fetch_unless_ready(self, controller, api):
        api.add_session("s1", "Chat", utc_now(), count=10)
        controller.initialize()
        controller.current_session.status = LoadStatus.LOADING

        assert controller.load_older_messages() is False

    def test_failure_notifies_and_keeps_messages(self, controller, api, notifications):
        api.add_session("s1", "Chat", utc_now(), count=10)
        controller.initialize()
        before = list(controller.current_session.messages)
        api.failing.add("get_paginated_messages")

        assert controller.load_older_messages() is False

        assert controller.current_session.messages == before
        assert controller.current_session.fetching_older_page is False
        assert notifications[-1][0] == "error"


class TestSessionManagement:
    def test_new_session_is_selected_first(self, controller, api):
        api.add_session("s1", "Chat", utc_now() - timedelta(minutes=5))
        controller.initialize()

        view = controller.new_session()

        assert controller.current_key == view.session_id
        assert controller.sessions[0].session_id == view.session_id
        assert view.title == "New Career Chat"

    def test_new_session_failure_keeps_state(self, controller, api, notifications):
        api.add_session("s1", "Chat", utc_now())
        controller.initialize()
        api.failing.add("create_session")

        assert controller.new_session() is None

        assert [v.session_id for v in controller.sessions] == ["s1"]
        assert notifications[-1][0] == "error"

    def test_rename_reorders(self, controller, api):
        now = utc_now()
        api.add_session("a", "A", now)
        api.add_session("b", "B", now - timedelta(hours=1))
        controller.initialize()

        assert controller.rename_session("b", "Offer negotiation") is True

        assert controller.sessions[0].session_id == "b"
        assert controller.sessions[0].title == "Offer negotiation"

    def test_rename_rejects_blank_title(self, controller, api, notifications):
        controller.initialize()

        assert controller.rename_session(controller.current_key, "  ") is False
        assert "update_session_title" not in api.calls
        assert notifications[-1][0] == "warning"

    def test_rename_failure_keeps_title(self, controller, api):
        api.add_session("a", "A", utc_now())
        controller.initialize()
        api.failing.add("update_session_title")

        assert controller.rename_session("a", "Other") is False
        assert controller.find_session("a").title == "A"

    def test_set_session_active(self, controller, api):
        api.add_session("a", "A", utc_now())
        controller.initialize()

        assert controller.set_session_active("a", False) is True
        assert controller.find_session("a").is_active is False

    def test_delete_current_selects_next(self, controller, api):
        now = utc_now()
        api.add_session("a", "A", now)
        api.add_session("b", "B", now - timedelta(hours=1))
        controller.initialize()

        assert controller.delete_session("a") is True

        assert [v.session_id for v in controller.sessions] == ["b"]
        assert controller.current_key == "b"

    def test_delete_last_session_starts_new_chat(self, controller, api):
        api.add_session("a", "A", utc_now())
        controller.initialize()

        controller.delete_session("a")

        assert len(controller.sessions) == 1
        assert controller.current_session.title == "New Career Chat"

    def test_delete_failure_keeps_session(self, controller, api, notifications):
        api.add_session("a", "A", utc_now())
        controller.initialize()
        api.failing.add("delete_session")

        assert controller.delete_session("a") is False
        assert controller.find_session("a") is not None
        assert notifications[-1][0] == "error"

    def test_refresh_session_count(self, controller, api):
        api.add_session("a", "A", utc_now())
        api.add_session("b", "B", utc_now())

        assert controller.refresh_session_count() == 2
        assert controller.session_count == 2

    def test_refresh_session_count_failure(self, controller, api):
        api.failing.add("get_session_count")

        assert controller.refresh_session_count() is None


class TestClearAll:
    def test_rotates_identity_and_reinitializes(self, api):
        browser = FakeBrowserStorage()
        identity = ClientIdentityStore(browser)
        identity.set(CLIENT_ID)
        api.add_session("a", "A", utc_now())
        api.add_session("b", "B", utc_now())
        controller = ClientConversationController(api, identity.get(), identity=identity)
        controller.initialize()

        assert controller.clear_all() is True

        assert controller.client_id != CLIENT_ID
        assert identity.get() == controller.client_id
        assert browser.items[identity.key] == controller.client_id
        assert len(controller.sessions) == 1
        assert controller.current_session.title == "New Career Chat"
        assert api.get_session_count(CLIENT_ID) == 0

    def test_failure_keeps_sessions(self, controller, api, notifications):
        api.add_session("a", "A", utc_now())
        controller.initialize()
        api.failing.add("clear_all_sessions")

        assert controller.clear_all() is False
        assert [v.session_id for v in controller.sessions] == ["a"]
        assert notifications[-1][0] == "error"
