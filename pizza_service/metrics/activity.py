"""Last-activity tracking for active-user gauges."""
from __future__ import annotations

from typing import Dict, Hashable

UserId = Hashable

DEFAULT_EXPIRY_SECONDS = 5 * 60


class ActivityRegistry:
    """Map of user id to last activity timestamp (epoch seconds).

    Entries only disappear through :meth:`remove` or :meth:`sweep_expired`;
    reading the registry never expires anything.
    """

    def __init__(self) -> None:
        self._last_seen: Dict[UserId, float] = {}

    def __len__(self) -> int:
        return len(self._last_seen)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._last_seen

    def size(self) -> int:
        return len(self._last_seen)

    def last_seen(self, user_id: UserId) -> float | None:
        return self._last_seen.get(user_id)

    def entries(self) -> dict[UserId, float]:
        return dict(self._last_seen)

    def upsert(self, user_id: UserId, timestamp: float) -> None:
        self._last_seen[user_id] = timestamp

    def remove(self, user_id: UserId) -> bool:
        return self._last_seen.pop(user_id, None) is not None

    def sweep_expired(self, now: float, window: float = DEFAULT_EXPIRY_SECONDS) -> dict[UserId, float]:
        """Drop every entry idle for longer than ``window`` and return them."""
        expired = {
            user_id: seen
            for user_id, seen in self._last_seen.items()
            if now - seen > window
        }
        for user_id in expired:
            del self._last_seen[user_id]
        return expired
