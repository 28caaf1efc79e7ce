"""Thin HTTP client for the chat API used by the Streamlit UI."""
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests


class ConversationApiError(RuntimeError):
    """Raised when the chat API is unreachable or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConversationApiClient:
    """Calls the `/api/v1/chat` endpoints and unwraps the response envelope."""

    def __init__(
        self,
        base_url: str,
        endpoint: str = "/api/v1/chat",
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = f"{base_url.rstrip('/')}{endpoint}"
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ConversationApiError(f"Failed to reach API at {url}: {e}")

        if not 200 <= resp.status_code < 300:
            try:
                detail = resp.json().get("detail")
            except ValueError:
                detail = resp.text
            raise ConversationApiError(
                f"API error {resp.status_code}: {detail}", status_code=resp.status_code
            )

        data = resp.json() or {}
        if "data" not in data:
            raise ConversationApiError("Malformed API response: missing 'data'")
        return data["data"]

    def send_message(
        self,
        *,
        client_id: str,
        session_id: str,
        content: str,
        message_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        payload = {
            "id": message_id,
            "clientId": client_id,
            "sessionId": session_id,
            "role": "user",
            "content": content,
            "timestamp": timestamp.isoformat() if timestamp else None,
        }
        return self._request("POST", "/messages", json=payload)

    def get_paginated_messages(
        self, session_id: str, limit: Optional[int] = None, cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        params = {}
        if limit is not None:
            params["limit"] = limit
        if cursor:
            params["cursor"] = cursor
        return self._request("GET", f"/sessions/{session_id}/messages", params=params)

    def get_sessions(self, client_id: str) -> List[Dict[str, Any]]:
        data = self._request("GET", "/sessions", params={"clientId": client_id})
        return data.get("sessions", [])

    def create_session(self, client_id: str, session_id: str, title: str) -> Dict[str, Any]:
        payload = {"clientId": client_id, "sessionId": session_id, "title": title}
        return self._request("POST", "/sessions", json=payload)

    def delete_session(self, session_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/sessions/{session_id}")

    def update_session_title(self, session_id: str, title: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/sessions/{session_id}/title", json={"title": title})

    def update_session_activity(self, session_id: str, is_active: bool) -> Dict[str, Any]:
        return self._request(
            "PATCH", f"/sessions/{session_id}/activity", json={"isActive": is_active}
        )

    def get_session_count(self, client_id: str) -> int:
        data = self._request("GET", "/sessions/count", params={"clientId": client_id})
        return int(data.get("count", 0))

    def clear_all_sessions(self, client_id: str) -> int:
        data = self._request("DELETE", "/sessions", params={"clientId": client_id})
        return int(data.get("deletedCount", 0))
