"""Domain layer: iPod database decoding and scrobble submission."""
