import time
from typing import Any


class TTLCache:
    """Small in-process cache with a per-entry time to live.

    Expired entries are dropped when read.
    """

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        self._entries[key] = (value, self._clock() + ttl)

    def clear(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear_all(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


ledger_cache = TTLCache()


def get_ledger_cache() -> TTLCache:
    """FastAPI dependency returning the process-wide ledger cache."""
    return ledger_cache
