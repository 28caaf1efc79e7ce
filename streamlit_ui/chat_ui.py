import sys
from pathlib import Path

import streamlit as st

try:
    from core.settings import SETTINGS
except ModuleNotFoundError:
    ROOT = Path(__file__).resolve().parents[1]
    if str(ROOT) not in sys.path:
        sys.path.insert(0, str(ROOT))
    from core.settings import SETTINGS

from streamlit_ui.api_client import ConversationApiClient
from streamlit_ui.controller import ClientConversationController, LoadStatus
from streamlit_ui.identity import (
    BrowserLocalStorage,
    ClientIdentityStore,
    StorageNotReady,
)


st.set_page_config(page_title="Career Chat", layout="centered")

TOAST_ICONS = {"error": "❌", "warning": "⚠️", "info": "ℹ️"}


def notify(level: str, message: str) -> None:
    st.toast(message, icon=TOAST_ICONS.get(level, "ℹ️"))


def browser_identity() -> ClientIdentityStore:
    # One store per browser session; the id itself lives in that browser
    if "identity" not in st.session_state:
        st.session_state.identity = ClientIdentityStore(
            BrowserLocalStorage(), key=SETTINGS.UI.CLIENT_ID_STORAGE_KEY
        )
    return st.session_state.identity


def build_controller(
    identity: ClientIdentityStore, client_id: str
) -> ClientConversationController:
    api = ConversationApiClient(
        base_url=SETTINGS.UI.API_BASE_URL,
        endpoint=SETTINGS.UI.ENDPOINT_CHAT,
        timeout=SETTINGS.UI.REQUEST_TIMEOUT,
    )
    controller = ClientConversationController(
        api,
        client_id,
        identity=identity,
        page_size=SETTINGS.CHAT.DEFAULT_PAGE_SIZE,
        notify=notify,
    )
    controller.initialize()
    controller.refresh_session_count()
    return controller


identity = browser_identity()
try:
    client_id = identity.get()
except StorageNotReady:
    # The script reruns once the browser answers
    st.stop()
identity.flush()

# Keep the controller across reruns
if "controller" not in st.session_state:
    st.session_state.controller = build_controller(identity, client_id)

controller: ClientConversationController = st.session_state.controller

if controller.status == LoadStatus.UNINITIALIZED:
    st.title("Career Chat")
    st.warning("Could not load your chats. Is the API running?")
    if st.button("Retry"):
        controller.initialize()
        controller.refresh_session_count()
        st.rerun()
    st.stop()

# Sidebar: session list and management
with st.sidebar:
    st.subheader("Your chats")
    if controller.session_count is not None:
        st.caption(f"{controller.session_count} saved chats")

    if st.button("New Chat", use_container_width=True):
        controller.new_session()
        controller.refresh_session_count()
        st.rerun()

    for view in controller.sessions:
        label = view.title if view.is_active else f"{view.title} (archived)"
        kind = "primary" if view.session_id == controller.current_key else "secondary"
        if st.button(label, key=f"session-{view.session_id}", type=kind, use_container_width=True):
            controller.select_session(view.session_id)
            st.rerun()

    current = controller.current_session
    if current is not None:
        st.divider()
        new_title = st.text_input("Rename chat", value=current.title, max_chars=255)
        if st.button("Save title") and new_title != current.title:
            controller.rename_session(current.session_id, new_title)
            st.rerun()

        active = st.toggle("Active", value=current.is_active)
        if active != current.is_active:
            controller.set_session_active(current.session_id, active)
            st.rerun()

        if st.button("Delete chat"):
            controller.delete_session(current.session_id)
            controller.refresh_session_count()
            st.rerun()

    st.divider()
    confirm = st.checkbox("I want to delete all chats")
    if st.button("Clear all chats", disabled=not confirm):
        if controller.clear_all():
            controller.refresh_session_count()
            notify("info", "All chats cleared")
        st.rerun()

    st.caption(f"API: {SETTINGS.UI.API_BASE_URL}{SETTINGS.UI.ENDPOINT_CHAT}")

current = controller.current_session
st.title(current.title if current else "Career Chat")

if current is not None:
    if current.status == LoadStatus.UNINITIALIZED:
        if st.button("Reload messages"):
            controller.select_session(current.session_id)
            st.rerun()

    # The top of the list is where older pages are requested
    if current.has_next_page:
        if st.button("Load older messages", disabled=current.fetching_older_page):
            controller.load_older_messages()
            st.rerun()

    for msg in current.messages:
        with st.chat_message(msg.role):
            st.markdown(msg.content)

if prompt := st.chat_input("Ask about your career...", disabled=controller.pending):
    with st.chat_message("user"):
        st.markdown(prompt)
    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            controller.send_message(prompt)
    st.rerun()
