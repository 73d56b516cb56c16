"""
Legacy Scrobbler CLI - entry point

Reads the play history off a mounted iPod and submits it to the scrobble
relay. Run `legacy-scrobbler connect`, approve access in the browser, then
`legacy-scrobbler login` once before the first scrobble.
"""

import argparse
import sys
from datetime import datetime
from typing import List, Optional

from loguru import logger

from legacy_scrobbler.core import (
    Config,
    get_log_file_path,
    load_config,
    log,
    print_table,
    safe_print,
    setup_loguru,
)
from legacy_scrobbler.domain import ipod, scrobbler


def _format_time(unix_seconds: int) -> str:
    if not unix_seconds:
        return "never"
    return datetime.fromtimestamp(unix_seconds).strftime("%Y-%m-%d %H:%M")


def _read_kwargs(config: Config) -> dict:
    return {
        "utc_offset": config.device.utc_offset_seconds,
        "window_size": config.device.scan_window_size,
    }


def run_history(config: Config, path: str, limit: Optional[int], tracks_only: bool) -> int:
    """Print the reconstructed play log (or played tracks) as a table.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        if tracks_only:
            played = ipod.get_played_tracks(path, **_read_kwargs(config))
            rows = [
                (
                    str(i + 1),
                    track.title,
                    track.artist or "Unknown Artist",
                    track.album or "Unknown Album",
                    str(track.play_count),
                    _format_time(track.last_played),
                )
                for i, track in enumerate(played[:limit])
            ]
            print_table(
                f"{len(played)} tracks with plays",
                ["#", "Title", "Artist", "Album", "Plays", "Last Played"],
                rows,
                numeric_columns=["#", "Plays"],
            )
            return 0

        events = ipod.get_recent_plays(path, **_read_kwargs(config))
    except ipod.IpodDatabaseError as e:
        logger.exception("Reading device failed")
        safe_print(f"❌ {e}", style="bold red")
        return 1

    rows = [
        (
            _format_time(event.played_at),
            event.track.title,
            event.track.artist or "Unknown Artist",
            event.track.album or "Unknown Album",
        )
        for event in events[:limit]
    ]
    print_table(f"{len(events)} plays", ["Played At", "Title", "Artist", "Album"], rows)
    return 0


def run_scrobble(config: Config, path: str, individually: bool, dry_run: bool) -> int:
    """Read the play log and submit it to the relay."""
    try:
        events = ipod.get_recent_plays(path, **_read_kwargs(config))
    except ipod.IpodDatabaseError as e:
        logger.exception("Reading device failed")
        safe_print(f"❌ {e}", style="bold red")
        return 1

    if not events:
        log("No new plays to scrobble")
        return 0

    log(f"📊 {len(events)} plays ready to scrobble")
    if dry_run:
        return 0

    try:
        session_key = scrobbler.load_session().require_session_key()
    except scrobbler.NotAuthenticatedError as e:
        safe_print(f"❌ {e}", style="bold red")
        return 1

    settings = config.scrobbler
    if individually:
        failed = scrobbler.scrobble_individually(
            settings.server_url, session_key, events, timeout=settings.item_timeout
        )
        log(f"✓ Scrobbled {len(events) - len(failed)} of {len(events)} plays")
        return 1 if failed else 0

    results = scrobbler.scrobble_events(
        settings.server_url,
        session_key,
        events,
        batch_size=settings.batch_size,
        timeout=settings.batch_timeout,
    )
    sent = sum(1 for ok in results if ok)
    log(f"✓ Sent {sent} of {len(results)} batches")
    return 0 if all(results) else 1


def run_connect(config: Config) -> int:
    try:
        url = scrobbler.connect(config.scrobbler)
    except scrobbler.ServiceUnavailableError as e:
        safe_print(f"❌ {e}", style="bold red")
        return 1
    log("Approve access in your browser, then run 'legacy-scrobbler login'")
    log(f"If no browser opened, visit: {url}")
    return 0


def run_login(config: Config) -> int:
    result = scrobbler.login(config.scrobbler)
    if not result.status:
        safe_print(result.message, style="yellow")
        return 1
    if scrobbler.update_profile(config.scrobbler):
        log(f"✓ Logged in as {scrobbler.load_session().username}")
    else:
        log("✓ Logged in (profile unavailable)", level="warning")
    return 0


def run_whoami() -> int:
    session = scrobbler.load_session()
    if not session.logged_in:
        safe_print("Not logged in", style="yellow")
        return 1
    safe_print(f"{session.username or 'unknown user'} (registered {_format_time(session.registered)})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legacy-scrobbler",
        description="Legacy Scrobbler - scrobble plays from a classic iPod",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    history_parser = subparsers.add_parser("history", help="Show plays recorded on the iPod")
    history_parser.add_argument("--path", help="iTunes directory on the iPod")
    history_parser.add_argument("--limit", type=int, help="Show at most N rows")
    history_parser.add_argument(
        "--tracks", action="store_true", help="List played tracks instead of single plays"
    )

    scrobble_parser = subparsers.add_parser("scrobble", help="Submit plays to last.fm")
    scrobble_parser.add_argument("--path", help="iTunes directory on the iPod")
    scrobble_parser.add_argument(
        "--individually", action="store_true", help="Send one request per play"
    )
    scrobble_parser.add_argument(
        "--dry-run", action="store_true", help="Read plays but do not submit them"
    )

    subparsers.add_parser("connect", help="Start last.fm authorization in the browser")
    subparsers.add_parser("login", help="Finish authorization after approving access")
    subparsers.add_parser("whoami", help="Show the logged-in last.fm user")
    subparsers.add_parser("logout", help="Forget the stored session")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the legacy-scrobbler command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config()
    setup_loguru(
        get_log_file_path(config),
        level=config.logging.level,
        console_output=config.logging.console_output,
    )

    path = getattr(args, "path", None) or config.device.mount_path

    if args.subcommand == "history":
        sys.exit(run_history(config, path, args.limit, args.tracks))
    elif args.subcommand == "scrobble":
        sys.exit(run_scrobble(config, path, args.individually, args.dry_run))
    elif args.subcommand == "connect":
        sys.exit(run_connect(config))
    elif args.subcommand == "login":
        sys.exit(run_login(config))
    elif args.subcommand == "whoami":
        sys.exit(run_whoami())
    elif args.subcommand == "logout":
        scrobbler.clear_session()
        log("Logged out")
        sys.exit(0)

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
