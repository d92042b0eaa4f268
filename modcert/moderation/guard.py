"""Abuse guard: per-user rate limiting and duplicate-submission suppression.

Both checks are soft limits. Two concurrent requests racing on the same key
in different processes can both pass when the window store is in-memory.
"""

from __future__ import annotations

import logging
from typing import Optional

from modcert.errors import DuplicateSubmissionError, RateLimitError
from modcert.moderation.window_store import WindowStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_DUPLICATE_WINDOW_SECONDS = 30.0

# Only the head of the content takes part in the duplicate key.
CONTENT_PREFIX_LENGTH = 100


class AbuseGuard:
    """Rate limiter and duplicate detector over an injected ``WindowStore``."""

    def __init__(
        self,
        store: WindowStore,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        duplicate_window_seconds: float = DEFAULT_DUPLICATE_WINDOW_SECONDS,
    ) -> None:
        self._store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.duplicate_window_seconds = duplicate_window_seconds

    def check_rate_limit(
        self,
        user_id: str,
        action: str,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
    ) -> None:
        """Record one *action* by *user_id*, or raise ``RateLimitError`` if over the limit."""
        limit = self.max_requests if max_requests is None else max_requests
        window = self.window_seconds if window_seconds is None else window_seconds

        if not self._store.increment_and_check(f"{user_id}:{action}", window, limit):
            logger.warning("Rate limit hit for %s on %s (%d per %gs)", user_id, action, limit, window)
            raise RateLimitError(
                f"Rate limit exceeded. Maximum {limit} requests per {window:g} seconds for {action}"
            )

    def check_duplicate_content(
        self,
        user_id: str,
        content: str,
        action: Optional[str] = None,
        window_seconds: Optional[float] = None,
    ) -> None:
        """Reject the same content from the same user inside the window.

        *action* is accepted for logging only and is not part of the key, so
        identical content submitted through two different actions collides.
        """
        window = self.duplicate_window_seconds if window_seconds is None else window_seconds

        self._store.sweep(window * 2)

        key = f"{user_id}:{(content or '')[:CONTENT_PREFIX_LENGTH]}"
        if not self._store.touch_if_quiet(key, window):
            logger.info("Duplicate submission from %s on %s", user_id, action or "-")
            raise DuplicateSubmissionError(
                "Duplicate submission detected. Please wait before submitting identical content."
            )
