"""Admin session handling for the Streamlit pages.

Visitors never log in; only moderators do. The admin's token and account are
kept together under one session key and the session's own API client is re-armed
with the token on every rerun.
"""
import streamlit as st
from typing import Optional, Dict, Any
from utils.api_client import get_api_client

ADMIN_KEY = "admin"


def init_session_state():
    """Initialize session state variables."""
    st.session_state.setdefault(ADMIN_KEY, None)
    st.session_state.setdefault("liked_post_ids", set())

    admin = st.session_state[ADMIN_KEY]
    if admin:
        get_api_client().set_auth_token(admin["token"])
    else:
        get_api_client().clear_auth_token()


def login(email: str, password: str) -> bool:
    """Log in through the admin API. Non-admin accounts are turned away."""
    response = get_api_client().admin_login(email, password)
    if not response["success"]:
        st.error(f"Login failed: {response['error']}")
        return False

    data = response["data"]
    if not data["user"].get("is_admin"):
        st.error("Login failed: 어드민 권한이 필요합니다.")
        return False

    st.session_state[ADMIN_KEY] = {"token": data["access_token"], "user": data["user"]}
    get_api_client().set_auth_token(data["access_token"])
    return True


def logout():
    if st.session_state.get(ADMIN_KEY):
        get_api_client().admin_logout()
    st.session_state[ADMIN_KEY] = None
    get_api_client().clear_auth_token()


def get_current_user() -> Optional[Dict[str, Any]]:
    admin = st.session_state.get(ADMIN_KEY)
    return admin["user"] if admin else None


def is_admin() -> bool:
    user = get_current_user()
    return bool(user and user.get("is_admin"))


def show_login_form():
    st.subheader("Admin Login")

    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")

    if submitted:
        if not (email and password):
            st.error("Please enter both email and password.")
        elif login(email, password):
            st.rerun()


def require_admin():
    """Show the login form and stop the page unless an admin is logged in."""
    if not is_admin():
        st.warning("Please log in as admin to access this page.")
        show_login_form()
        st.stop()


def check_api_response(response: Dict[str, Any]) -> bool:
    """Surface API errors; an expired admin token ends the session."""
    if response["success"]:
        return True

    if response.get("status_code") in (401, 403) and is_admin():
        logout()
        st.error("Session expired. Please log in again.")
    else:
        st.error(f"API Error: {response['error']}")
    return False
