import json
import logging
from typing import Any, Dict, List, MutableMapping, Optional

import requests
import streamlit as st

from config import API_BASE_URL, REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

SESSION_KEY = "api_client"


class APIClient:
    """Client for communicating with the backend API.

    Every call returns ``{"success": True, "data": ...}`` or
    ``{"success": False, "error": ..., "status_code": ...}`` and never raises
    for HTTP or connection failures.
    """

    def __init__(self, base_url: str = API_BASE_URL, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

        # Set default headers
        self.session.headers.update({
            "Content-Type": "application/json"
        })

    def set_auth_token(self, token: str):
        """Set the authorization token for API requests."""
        self.session.headers.update({
            "Authorization": f"Bearer {token}"
        })

    def clear_auth_token(self):
        """Clear the authorization token and any cookie the server has set."""
        if "Authorization" in self.session.headers:
            del self.session.headers["Authorization"]
        self.session.cookies.clear()

    # Markers

    def get_markers(self, name: Optional[str] = None, include_posts: bool = True) -> Dict[str, Any]:
        """Get markers, optionally filtered by a name substring."""
        params = {"include_posts": str(include_posts).lower()}
        if name:
            params["name"] = name
        return self._request("GET", "/markers", params=params)

    def create_marker(self, name: str, latitude: float, longitude: float, tags: Optional[List[str]] = None) -> Dict[str, Any]:
        """Create a marker at a coordinate."""
        payload = {"name": name, "latitude": latitude, "longitude": longitude, "tags": tags or []}
        return self._request("POST", "/markers", json=payload)

    def get_marker(self, marker_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/markers/{marker_id}")

    def update_marker_tags(self, marker_id: str, tags: List[str]) -> Dict[str, Any]:
        """Replace a marker's tag set."""
        return self._request("PATCH", f"/markers/{marker_id}", json={"tags": tags})

    def delete_marker(self, marker_id: str) -> Dict[str, Any]:
        """Delete a marker. The server refuses markers that still have posts."""
        return self._request("DELETE", f"/markers/{marker_id}")

    # Posts

    def get_posts(self, marker_id: str) -> Dict[str, Any]:
        """Get a marker's posts, newest first."""
        return self._request("GET", f"/markers/{marker_id}/posts")

    def create_post(self, marker_id: str, title: str, content: str, password: str) -> Dict[str, Any]:
        payload = {"title": title, "content": content, "password": password}
        return self._request("POST", f"/markers/{marker_id}/posts", json=payload)

    def update_post(self, post_id: str, title: str, content: str, password: Optional[str] = None) -> Dict[str, Any]:
        """Edit a post. Admin sessions may omit the password."""
        payload = {"title": title, "content": content}
        if password:
            payload["password"] = password
        return self._request("PATCH", f"/posts/{post_id}", json=payload)

    def delete_post(self, post_id: str, password: Optional[str] = None) -> Dict[str, Any]:
        """Delete a post. Admin sessions may omit the password."""
        payload = {"password": password} if password else None
        return self._request("DELETE", f"/posts/{post_id}", json=payload)

    def like_post(self, post_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/posts/{post_id}/likes")

    # Admin

    def admin_login(self, email: str, password: str) -> Dict[str, Any]:
        """Authenticate an admin and get an access token.

        The login cookie meant for browsers is dropped; this client only ever
        authenticates with the bearer token passed to ``set_auth_token``.
        """
        response = self._request("POST", "/admin/login", json={"email": email, "password": password})
        self.session.cookies.clear()
        return response

    def admin_logout(self) -> Dict[str, Any]:
        return self._request("POST", "/admin/logout")

    def get_admin_info(self) -> Dict[str, Any]:
        """Get the logged-in admin's account."""
        return self._request("GET", "/admin/me")

    def get_all_posts(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Get one page of every post, for moderation."""
        return self._request("GET", "/posts", params={"page": page, "limit": limit})

    def get_health(self) -> Dict[str, Any]:
        """Get API health status."""
        return self._request("GET", "/healthz")

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        kwargs.setdefault("timeout", REQUEST_TIMEOUT_SECONDS)
        try:
            response = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            return {"success": False, "error": "서버에 연결할 수 없습니다.", "status_code": None}
        return self._handle_response(response)

    def _handle_response(self, response: requests.Response) -> Dict[str, Any]:
        """Handle API response and return JSON data or error."""
        if response.status_code == 204 or not response.content:
            data = None
        else:
            try:
                data = response.json()
            except json.JSONDecodeError:
                data = {"error": "Invalid JSON response"}

        if response.status_code >= 400:
            error_msg = (data or {}).get("error", f"HTTP {response.status_code}")
            return {"success": False, "error": error_msg, "status_code": response.status_code}

        return {"success": True, "data": data}


def get_api_client(session_state: Optional[MutableMapping] = None) -> APIClient:
    """Return the calling browser session's client, creating it on first use.

    Streamlit serves every visitor from one process, so a module-level client
    would share its auth header between the admin and everyone else.
    """
    state = st.session_state if session_state is None else session_state
    client = state.get(SESSION_KEY)
    if client is None:
        client = APIClient()
        state[SESSION_KEY] = client
    return client
