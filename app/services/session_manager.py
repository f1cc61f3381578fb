import time
from typing import Callable, Optional

from app.logging_config import get_logger

logger = get_logger("session_manager")


class SessionManager:
    """Tracks when each conversation was last seen. Ownership itself lives in the platform session store."""

    def __init__(self, idle_seconds: float = 1800.0, clock: Callable[[], float] = time.monotonic):
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._last_seen: dict[str, float] = {}

    def touch(self, conversation_id: Optional[str]) -> None:
        if conversation_id:
            self._last_seen[conversation_id] = self._clock()

    def active_count(self) -> int:
        return len(self._last_seen)

    def cleanup(self) -> int:
        """Drop conversations idle longer than ``idle_seconds``. Returns how many were dropped."""
        cutoff = self._clock() - self.idle_seconds
        stale = [cid for cid, seen in self._last_seen.items() if seen < cutoff]
        for cid in stale:
            del self._last_seen[cid]
        if stale:
            logger.info(f"Dropped {len(stale)} idle conversations", extra={"context": {"active": len(self._last_seen)}})
        return len(stale)
