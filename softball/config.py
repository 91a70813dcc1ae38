"""Centralized configuration for environment variables."""

import os

REPLAY_ALLOWLIST_ENV = "SOFTBALL_REPLAY_ALLOWLIST"


def get_replay_allowlist() -> frozenset[str]:
    """Return event type tags that replay skips instead of rejecting.

    Read from a comma-separated environment variable, e.g.
    ``SOFTBALL_REPLAY_ALLOWLIST="PitchThrown,WeatherDelay"``. Empty by default,
    so any unhandled event type fails reconstruction.
    """
    raw = os.environ.get(REPLAY_ALLOWLIST_ENV, "")
    return frozenset(tag.strip() for tag in raw.split(",") if tag.strip())


def is_replay_tolerated(event_type: str) -> bool:
    """True when an unhandled event type should be skipped during replay."""
    return event_type in get_replay_allowlist()
