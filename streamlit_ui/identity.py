"""Per-browser client identifier for the Streamlit client.

The id lives in the browser's localStorage, so every browser profile keeps its
own id across visits and only ever sees its own sessions. Streamlit runs the
script on the server, so storage is reached through a small JS component and
each read costs one round trip to the browser.
"""
import json
import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from streamlit_js_eval import streamlit_js_eval

from api.shared.utils import is_valid_uuid

logger = logging.getLogger("career_chat.ui.identity")

CLIENT_ID_STORAGE_KEY = "careerChat.clientId"


class StorageNotReady(RuntimeError):
    """The browser has not answered a storage read yet."""


class BrowserLocalStorage:
    """window.localStorage of the browser attached to this Streamlit session.

    A read renders a component and returns None until the browser replies,
    which reruns the script. Writes are queued and rendered by `flush()` until
    the browser confirms them, so a write survives an `st.rerun()` issued
    right after it.
    """

    def __init__(self, prefix: str = "career-chat-storage"):
        self.prefix = prefix
        self._pending: Dict[str, Optional[str]] = {}

    def get_item(self, name: str) -> Optional[str]:
        raw = streamlit_js_eval(
            js_expressions=(
                f"JSON.stringify(window.localStorage.getItem({json.dumps(name)}))"
            ),
            key=f"{self.prefix}-get-{name}",
        )
        if raw is None:
            raise StorageNotReady(name)
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Unreadable localStorage value for {name}: {raw!r}")
            return None
        return value if isinstance(value, str) else None

    def set_item(self, name: str, value: str) -> None:
        self._pending[name] = value

    def remove_item(self, name: str) -> None:
        self._pending[name] = None

    def flush(self) -> None:
        """Render queued writes; call once per script run."""
        for name, value in list(self._pending.items()):
            if value is None:
                expression = f"window.localStorage.removeItem({json.dumps(name)})"
                key = f"{self.prefix}-remove-{name}"
            else:
                expression = (
                    f"window.localStorage.setItem({json.dumps(name)}, {json.dumps(value)})"
                )
                key = f"{self.prefix}-set-{name}-{value}"
            done = streamlit_js_eval(js_expressions=f"({expression}, true)", key=key)
            if done:
                del self._pending[name]


class ClientIdentityStore:
    """Get-or-create access to the client id kept in browser storage.

    The id is cached after the first read; `storage` is anything with
    `get_item`, `set_item`, `remove_item` and `flush`.
    """

    def __init__(self, storage: Any, key: str = CLIENT_ID_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._client_id: Optional[str] = None
        self._loaded = False

    def get(self) -> str:
        """Return the client id, issuing a new one if the browser has none.

        Raises StorageNotReady while the browser has not answered the first read.
        """
        if self._client_id is not None:
            return self._client_id
        if not self._loaded:
            stored = self.storage.get_item(self.key)
            self._loaded = True
            if stored is not None and is_valid_uuid(stored):
                self._client_id = stored
                return stored
            if stored is not None:
                logger.warning(f"Replacing malformed client id {stored!r}")

        client_id = str(uuid4())
        self.set(client_id)
        logger.info(f"Created client id {client_id}")
        return client_id

    def set(self, client_id: str) -> None:
        if not is_valid_uuid(client_id):
            raise ValueError(f"Client id must be a UUID, got {client_id!r}")
        self.storage.set_item(self.key, client_id)
        self._client_id = client_id
        self._loaded = True

    def clear(self) -> None:
        self.storage.remove_item(self.key)
        self._client_id = None
        self._loaded = True

    def flush(self) -> None:
        self.storage.flush()
