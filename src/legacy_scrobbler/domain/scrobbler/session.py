"""
Scrobble service session state.

Stores the relay credentials, the approved session key and the cached
profile as JSON in the data directory (owner read/write only).
"""

import json
import webbrowser
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Optional

from loguru import logger

from legacy_scrobbler.core.config import ScrobblerConfig, get_data_dir

from . import client
from .exceptions import NotAuthenticatedError, ServiceUnavailableError

SESSION_FILENAME = "session.json"

APPROVAL_PENDING_MESSAGE = (
    "Please return to your Browser and allow Legacy Scrobbler to access your profile."
)
SERVICE_OFFLINE_MESSAGE = "Legacy Scrobbler service seems to be offline. Sorry."


@dataclass(frozen=True)
class ScrobblerSession:
    """Persisted authentication state."""

    api_key: str = ""
    user_token: str = ""
    session_key: str = ""
    username: str = ""
    profile_picture: str = ""
    registered: int = 0

    @property
    def logged_in(self) -> bool:
        return bool(self.session_key)

    def require_session_key(self) -> str:
        if not self.session_key:
            raise NotAuthenticatedError("Not logged in; run 'legacy-scrobbler connect' first")
        return self.session_key


@dataclass(frozen=True)
class LoginResult:
    status: bool
    message: str = ""


def get_session_path() -> Path:
    return get_data_dir() / SESSION_FILENAME


def load_session(path: Optional[Path] = None) -> ScrobblerSession:
    """Load the stored session, or an empty one when none is stored."""
    session_file = path or get_session_path()
    if not session_file.exists():
        return ScrobblerSession()

    try:
        with open(session_file, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load session from {session_file}: {e}")
        return ScrobblerSession()

    known = {k: v for k, v in data.items() if k in ScrobblerSession.__dataclass_fields__}
    return ScrobblerSession(**known)


def save_session(session: ScrobblerSession, path: Optional[Path] = None) -> None:
    """Save the session with secure permissions."""
    session_file = path or get_session_path()
    session_file.parent.mkdir(parents=True, exist_ok=True)

    with open(session_file, "w", encoding="utf-8") as f:
        json.dump(asdict(session), f, indent=2)

    session_file.chmod(0o600)
    logger.debug(f"Saved scrobbler session to {session_file}")


def clear_session(path: Optional[Path] = None) -> None:
    session_file = path or get_session_path()
    session_file.unlink(missing_ok=True)
    logger.info("Cleared scrobbler session")


def connect(
    config: ScrobblerConfig, path: Optional[Path] = None, open_browser: bool = True
) -> str:
    """Start authentication: get a token, open the approval page, persist.

    Returns:
        The approval URL (also opened in the browser when open_browser)

    Raises:
        ServiceUnavailableError: If the relay does not issue credentials
    """
    credentials = client.fetch_credentials(config.server_url, timeout=config.request_timeout)
    if credentials is None:
        raise ServiceUnavailableError(SERVICE_OFFLINE_MESSAGE)

    url = client.build_auth_url(credentials)
    if open_browser:
        webbrowser.open(url, new=2)

    session = replace(
        load_session(path), api_key=credentials.api_key, user_token=credentials.user_token
    )
    save_session(session, path)
    return url


def login(config: ScrobblerConfig, path: Optional[Path] = None) -> LoginResult:
    """Trade the stored, approved user token for a session key."""
    session = load_session(path)
    if not session.user_token:
        return LoginResult(False, "No pending authorization; run 'legacy-scrobbler connect' first")

    session_key = client.fetch_session_key(
        config.server_url, session.user_token, timeout=config.request_timeout
    )
    if session_key is None:
        return LoginResult(False, APPROVAL_PENDING_MESSAGE)

    save_session(replace(session, session_key=session_key), path)
    logger.info("Scrobbler login succeeded")
    return LoginResult(True)


def update_profile(config: ScrobblerConfig, path: Optional[Path] = None) -> bool:
    """Refresh the cached profile of the logged-in user."""
    session = load_session(path)
    profile = client.fetch_user_info(
        config.server_url, session.require_session_key(), timeout=config.request_timeout
    )
    if profile is None:
        return False

    save_session(
        replace(
            session,
            username=profile.name,
            profile_picture=profile.profile_picture,
            registered=profile.registered,
        ),
        path,
    )
    return True
