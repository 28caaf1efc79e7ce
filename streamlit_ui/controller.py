"""Client-side conversation state for the Streamlit UI.

Keeps the known sessions and the selected session's messages in memory and
synchronizes them with the chat API: optimistic sends, cursor paging toward
older messages, and session list ordering by last update.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import TypeAdapter

from api.features.conversation.entities.chat_session import DEFAULT_SESSION_TITLE
from api.features.conversation.titles import generate_session_title
from api.shared.utils import as_utc, utc_now
from streamlit_ui.api_client import ConversationApiClient, ConversationApiError
from streamlit_ui.identity import ClientIdentityStore

logger = logging.getLogger("career_chat.ui.controller")

ERROR_REPLY = (
    "I apologize, but I'm having trouble responding right now. Please try again."
)

_DATETIME = TypeAdapter(datetime)


def _parse_datetime(value: Any) -> datetime:
    if value is None:
        return utc_now()
    return as_utc(_DATETIME.validate_python(value))


class LoadStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass
class ClientMessage:
    id: str
    role: str
    content: str
    timestamp: datetime
    pending: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ClientMessage":
        return cls(
            id=str(data["id"]),
            role=str(data.get("role", "assistant")),
            content=str(data.get("content", "")),
            timestamp=_parse_datetime(data.get("timestamp")),
        )


@dataclass
class SessionView:
    """One session as the client sees it, with its paging state."""

    session_id: str
    title: str
    updated_at: datetime
    is_active: bool = True
    messages: List[ClientMessage] = field(default_factory=list)
    status: LoadStatus = LoadStatus.UNINITIALIZED
    next_cursor: Optional[str] = None
    has_next_page: bool = False
    fetching_older_page: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "SessionView":
        return cls(
            session_id=str(data["sessionId"]),
            title=str(data.get("title") or DEFAULT_SESSION_TITLE),
            updated_at=_parse_datetime(data.get("updatedAt")),
            is_active=bool(data.get("isActive", True)),
            messages=[ClientMessage.from_api(m) for m in data.get("messages") or []],
        )

    def apply_page(self, page: Dict[str, Any]) -> None:
        self.next_cursor = page.get("nextCursor")
        self.has_next_page = bool(page.get("hasNextPage"))


Notifier = Callable[[str, str], None]


def _log_notification(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)


class ClientConversationController:
    """Session list and message cache kept in step with the chat API."""

    def __init__(
        self,
        api: ConversationApiClient,
        client_id: str,
        *,
        identity: Optional[ClientIdentityStore] = None,
        page_size: int = 50,
        notify: Optional[Notifier] = None,
    ):
        self.api = api
        self.client_id = client_id
        self.identity = identity
        self.page_size = page_size
        self.notify = notify or _log_notification

        self.status = LoadStatus.UNINITIALIZED
        self.sessions: List[SessionView] = []
        self.current_key: Optional[str] = None
        self.pending = False
        self.session_count: Optional[int] = None

    @property
    def current_session(self) -> Optional[SessionView]:
        return self.find_session(self.current_key) if self.current_key else None

    def find_session(self, session_key: str) -> Optional[SessionView]:
        for view in self.sessions:
            if view.session_id == session_key:
                return view
        return None

    def _reorder(self) -> None:
        self.sessions.sort(key=lambda v: v.updated_at, reverse=True)

    def _touched_at(self, server_value: Any) -> datetime:
        """Update time for a session the server just wrote to.

        Prefers the server's value; without one, the session still has to sort
        ahead of every other server-stamped session.
        """
        if server_value:
            return _parse_datetime(server_value)
        later = [v.updated_at + timedelta(microseconds=1) for v in self.sessions]
        return max([utc_now()] + later)

    def _fail(self, action: str, error: ConversationApiError) -> None:
        logger.warning(f"Failed to {action}: {error}")
        self.notify("error", f"Failed to {action}. Please try again.")

    # Loading

    def initialize(self) -> bool:
        """Load the client's sessions and select the most recently updated one."""
        self.status = LoadStatus.LOADING
        try:
            sessions = self.api.get_sessions(self.client_id)
        except ConversationApiError as e:
            self.status = LoadStatus.UNINITIALIZED
            self._fail("load your chats", e)
            return False

        self.sessions = [SessionView.from_api(s) for s in sessions]
        self._reorder()
        self.status = LoadStatus.READY

        if not self.sessions:
            return self.new_session() is not None

        self.select_session(self.sessions[0].session_id)
        return True

    def select_session(self, session_key: str) -> None:
        view = self.find_session(session_key)
        if view is None:
            return
        self.current_key = session_key
        if view.status == LoadStatus.UNINITIALIZED:
            self._load_first_page(view)

    def _load_first_page(self, view: SessionView) -> None:
        view.status = LoadStatus.LOADING
        try:
            page = self.api.get_paginated_messages(view.session_id, limit=self.page_size)
        except ConversationApiError as e:
            view.status = LoadStatus.UNINITIALIZED
            self._fail("load messages", e)
            return
        view.messages = [ClientMessage.from_api(m) for m in page.get("messages", [])]
        view.apply_page(page)
        view.status = LoadStatus.READY

    def load_older_messages(self) -> bool:
        """Prepend the next older page of the current session, if there is one."""
        view = self.current_session
        if (
            view is None
            or view.status != LoadStatus.READY
            or not view.has_next_page
            or view.fetching_older_page
        ):
            return False

        view.fetching_older_page = True
        try:
            page = self.api.get_paginated_messages(
                view.session_id, limit=self.page_size, cursor=view.next_cursor
            )
        except ConversationApiError as e:
            self._fail("load older messages", e)
            return False
        finally:
            view.fetching_older_page = False

        known = {m.id for m in view.messages}
        older = [
            ClientMessage.from_api(m)
            for m in page.get("messages", [])
            if str(m.get("id")) not in known
        ]
        view.messages = older + view.messages
        view.apply_page(page)
        return True

    # Sending

    def send_message(self, content: str) -> bool:
        """Send a user message with an optimistic local append."""
        view = self.current_session
        if self.pending or view is None or not content or not content.strip():
            return False

        is_first_message = not any(m.role == "user" for m in view.messages)
        message = ClientMessage(
            id=str(uuid4()),
            role="user",
            content=content,
            timestamp=utc_now(),
            pending=True,
        )
        view.messages.append(message)
        previous_title = view.title
        if is_first_message and view.title == DEFAULT_SESSION_TITLE:
            view.title = generate_session_title(content)
        self.pending = True

        try:
            result = self.api.send_message(
                client_id=self.client_id,
                session_id=view.session_id,
                content=content,
                message_id=message.id,
                timestamp=message.timestamp,
            )
        except ConversationApiError as e:
            logger.warning(f"Send failed for session {view.session_id}: {e}")
            message.pending = False
            view.title = previous_title
            view.messages.append(
                ClientMessage(
                    id=str(uuid4()),
                    role="assistant",
                    content=ERROR_REPLY,
                    timestamp=utc_now(),
                )
            )
            return False
        finally:
            self.pending = False

        message.id = str(result.get("userMessageId") or message.id)
        message.pending = False
        view.messages.append(
            ClientMessage(
                id=str(result.get("aiMessageId") or uuid4()),
                role="assistant",
                content=str(result.get("content") or ""),
                timestamp=utc_now(),
            )
        )
        view.updated_at = self._touched_at(result.get("updatedAt"))
        self._reorder()
        return True

    # Session management

    def new_session(self) -> Optional[SessionView]:
        session_key = str(uuid4())
        try:
            data = self.api.create_session(
                self.client_id, session_key, DEFAULT_SESSION_TITLE
            )
        except ConversationApiError as e:
            self._fail("create a new chat", e)
            return None

        view = SessionView.from_api(data)
        view.status = LoadStatus.READY
        self.sessions.append(view)
        self._reorder()
        self.current_key = view.session_id
        return view

    def rename_session(self, session_key: str, title: str) -> bool:
        view = self.find_session(session_key)
        if view is None:
            return False
        title = (title or "").strip()
        if not title or len(title) > 255:
            self.notify("warning", "Title must be between 1 and 255 characters.")
            return False
        try:
            data = self.api.update_session_title(session_key, title)
        except ConversationApiError as e:
            self._fail("rename the chat", e)
            return False

        view.title = str(data.get("title") or title)
        view.updated_at = _parse_datetime(data.get("updatedAt"))
        self._reorder()
        return True

    def set_session_active(self, session_key: str, is_active: bool) -> bool:
        view = self.find_session(session_key)
        if view is None:
            return False
        try:
            self.api.update_session_activity(session_key, is_active)
        except ConversationApiError as e:
            self._fail("update the chat", e)
            return False
        view.is_active = is_active
        return True

    def delete_session(self, session_key: str) -> bool:
        if self.find_session(session_key) is None:
            return False
        try:
            self.api.delete_session(session_key)
        except ConversationApiError as e:
            self._fail("delete the chat", e)
            return False

        self.sessions = [v for v in self.sessions if v.session_id != session_key]
        if self.current_key == session_key:
            self.current_key = None
            if self.sessions:
                self.select_session(self.sessions[0].session_id)
            else:
                self.new_session()
        return True

    def clear_all(self) -> bool:
        """Delete every session, rotate the client id and start over."""
        try:
            deleted = self.api.clear_all_sessions(self.client_id)
        except ConversationApiError as e:
            self._fail("clear your chats", e)
            return False

        logger.info(f"Cleared {deleted} sessions for client {self.client_id}")
        if self.identity is not None:
            self.identity.clear()
            self.client_id = self.identity.get()
        self.sessions = []
        self.current_key = None
        self.session_count = None
        self.status = LoadStatus.UNINITIALIZED
        return self.initialize()

    def refresh_session_count(self) -> Optional[int]:
        try:
            self.session_count = self.api.get_session_count(self.client_id)
        except ConversationApiError as e:
            logger.warning(f"Session count unavailable: {e}")
            return None
        return self.session_count
