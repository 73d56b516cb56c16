"""Scrobble relay client and session management."""

from .client import (
    Credentials,
    UserProfile,
    build_auth_url,
    event_to_payload,
    fetch_credentials,
    fetch_session_key,
    fetch_user_info,
    scrobble_events,
    scrobble_individually,
    send_scrobbles,
)
from .exceptions import NotAuthenticatedError, ScrobblerError, ServiceUnavailableError
from .session import (
    LoginResult,
    ScrobblerSession,
    clear_session,
    connect,
    load_session,
    login,
    save_session,
    update_profile,
)

__all__ = [
    "Credentials",
    "UserProfile",
    "build_auth_url",
    "event_to_payload",
    "fetch_credentials",
    "fetch_session_key",
    "fetch_user_info",
    "scrobble_events",
    "scrobble_individually",
    "send_scrobbles",
    "NotAuthenticatedError",
    "ScrobblerError",
    "ServiceUnavailableError",
    "LoginResult",
    "ScrobblerSession",
    "clear_session",
    "connect",
    "load_session",
    "login",
    "save_session",
    "update_profile",
]
