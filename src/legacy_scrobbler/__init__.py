"""Legacy Scrobbler - rebuild listening history from an iPod and scrobble it."""

__version__ = "0.3.0"
