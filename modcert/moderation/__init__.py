"""Abuse mitigation for mutating callables.

Provides rate limiting and duplicate-content suppression backed by a
pluggable sliding-window store.
"""

from modcert.moderation.guard import AbuseGuard
from modcert.moderation.window_store import (
    InMemoryWindowStore,
    RedisWindowStore,
    WindowStore,
    open_window_store,
)

__all__ = [
    "AbuseGuard",
    "InMemoryWindowStore",
    "RedisWindowStore",
    "WindowStore",
    "open_window_store",
]
