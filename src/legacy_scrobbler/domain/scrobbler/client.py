"""
Scrobble relay service API operations.

The relay holds the last.fm API secret. The client asks it for an API key
and request token, sends the user to last.fm to approve the token, then
trades the token for a session key used to submit scrobbles.

Endpoints:
    GET  /authenticate  -> [api_key, user_token]
    GET  /session       (Bearer user_token)  -> session key
    GET  /userinfo      (Bearer session_key) -> last.fm user.getInfo body
    POST /scrobble      (Bearer session_key) -> {"success": bool}

Every call reports failure through its return value; network and HTTP
errors are logged, never raised.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests
from loguru import logger

from legacy_scrobbler.domain.ipod.models import ScrobbleEvent

AUTH_PAGE_URL = "http://www.last.fm/api/auth/"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class Credentials:
    """API key and unapproved request token issued by the relay."""

    api_key: str
    user_token: str


@dataclass(frozen=True)
class UserProfile:
    """The parts of last.fm user info shown in the CLI."""

    name: str
    profile_picture: str
    registered: int  # Unix seconds


def _bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _url(server_url: str, endpoint: str) -> str:
    return f"{server_url.rstrip('/')}/{endpoint}"


def fetch_credentials(
    server_url: str, timeout: int = DEFAULT_TIMEOUT
) -> Optional[Credentials]:
    """Request an API key and user token from the relay."""
    try:
        response = requests.get(_url(server_url, "authenticate"), timeout=timeout)
        response.raise_for_status()
        api_key, user_token = response.json()[:2]
    except requests.RequestException as e:
        logger.error(f"Failed to fetch credentials: {e}")
        return None
    except (ValueError, TypeError) as e:
        logger.error(f"Unexpected /authenticate response: {e}")
        return None
    return Credentials(api_key=str(api_key), user_token=str(user_token))


def build_auth_url(credentials: Credentials) -> str:
    """URL where the user approves the request token on last.fm."""
    query = urlencode({"api_key": credentials.api_key, "token": credentials.user_token})
    return f"{AUTH_PAGE_URL}?{query}"


def fetch_session_key(
    server_url: str, user_token: str, timeout: int = DEFAULT_TIMEOUT
) -> Optional[str]:
    """Exchange an approved user token for a session key.

    Returns None when the token has not been approved yet (empty body) or
    the request fails.
    """
    try:
        response = requests.get(
            _url(server_url, "session"), headers=_bearer(user_token), timeout=timeout
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Failed to fetch session key: {e}")
        return None

    try:
        session_key = response.json()
    except ValueError:
        session_key = response.text.strip()
    if not session_key or not isinstance(session_key, str):
        logger.info("Session key not issued yet; token not approved")
        return None
    return session_key


def fetch_user_info(
    server_url: str, session_key: str, timeout: int = DEFAULT_TIMEOUT
) -> Optional[UserProfile]:
    """Fetch the profile of the user owning session_key."""
    try:
        response = requests.get(
            _url(server_url, "userinfo"), headers=_bearer(session_key), timeout=timeout
        )
        response.raise_for_status()
        user = response.json()["user"]
        return UserProfile(
            name=user["name"],
            profile_picture=user["image"][2]["#text"],
            registered=int(user["registered"]["unixtime"]),
        )
    except requests.RequestException as e:
        logger.warning(f"Failed to fetch user info: {e}")
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.warning(f"Unexpected /userinfo response: {e}")
    return None


def event_to_payload(event: ScrobbleEvent) -> Dict[str, Any]:
    """Wire form of one play, as the relay expects it."""
    track = event.track
    return {
        "track": track.title,
        "artist": track.artist,
        "album": track.album,
        "playCount": 1,
        "lastPlayed": event.played_at,
        "length": track.length_ms,
        "id": track.sequence_id,
    }


def send_scrobbles(
    server_url: str,
    session_key: str,
    events: List[ScrobbleEvent],
    timeout: int = DEFAULT_TIMEOUT,
) -> bool:
    """Submit events in one request.

    Args:
        timeout: Seconds to wait for the relay

    Returns:
        The relay's success flag, or False on any failure
    """
    body = {
        "tracklist": [event_to_payload(event) for event in events],
        "sessionKey": session_key,
    }
    try:
        response = requests.post(
            _url(server_url, "scrobble"),
            json=body,
            headers=_bearer(session_key),
            timeout=timeout,
        )
        response.raise_for_status()
        return bool(response.json().get("success", False))
    except requests.RequestException as e:
        logger.error(f"Error scrobbling {len(events)} plays: {e}")
    except (ValueError, AttributeError) as e:
        logger.error(f"Unexpected /scrobble response: {e}")
    return False


def scrobble_events(
    server_url: str,
    session_key: str,
    events: List[ScrobbleEvent],
    batch_size: int = 50,
    timeout: int = DEFAULT_TIMEOUT,
) -> List[bool]:
    """Submit events in batches; returns one success flag per batch."""
    results = []
    for start in range(0, len(events), batch_size):
        batch = events[start : start + batch_size]
        ok = send_scrobbles(server_url, session_key, batch, timeout=timeout)
        logger.info(
            f"Batch {start // batch_size + 1}: {len(batch)} plays {'sent' if ok else 'failed'}"
        )
        results.append(ok)
    return results


def scrobble_individually(
    server_url: str,
    session_key: str,
    events: List[ScrobbleEvent],
    on_status: Optional[Callable[[int, str], None]] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> List[ScrobbleEvent]:
    """Submit each event on its own so failures stay independent.

    Args:
        on_status: Called with (index, "success" | "failed") after each event

    Returns:
        Events that failed to submit
    """
    failed = []
    for index, event in enumerate(events):
        ok = send_scrobbles(server_url, session_key, [event], timeout=timeout)
        if not ok:
            failed.append(event)
        if on_status:
            on_status(index, "success" if ok else "failed")
    if failed:
        logger.warning(f"{len(failed)} of {len(events)} plays failed to scrobble")
    return failed
