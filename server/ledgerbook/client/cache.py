"""In-memory query cache keyed by endpoint path.

Keys are tuples whose first element is the endpoint path, e.g.
``("/api/journal-entries",)`` for the list and
``("/api/journal-entries", 12)`` for one entry. Invalidation is by prefix,
so invalidating the list key also drops every cached detail beneath it.
"""

from typing import Any, Callable, Hashable, Optional

CacheKey = tuple[Hashable, ...]
Listener = Callable[[str, CacheKey], None]

JOURNAL_ENTRIES = "/api/journal-entries"
ACCOUNT_OPTIONS = "/api/chart-of-accounts/options"


def entries_key() -> CacheKey:
    return (JOURNAL_ENTRIES,)


def entry_key(entry_id: int) -> CacheKey:
    return (JOURNAL_ENTRIES, entry_id)


# keys to drop after each mutation succeeds
INVALIDATION_POLICY: dict[str, Callable[[Optional[int]], list[CacheKey]]] = {
    "create": lambda entry_id: [entries_key()],
    "update": lambda entry_id: [entries_key(), entry_key(entry_id)],
    "post": lambda entry_id: [entries_key(), entry_key(entry_id)],
    "force_draft": lambda entry_id: [entries_key(), entry_key(entry_id)],
    "delete": lambda entry_id: [entries_key(), entry_key(entry_id)],
}


class QueryCache:
    def __init__(self) -> None:
        self._entries: dict[CacheKey, Any] = {}
        self._listeners: list[Listener] = []

    def get(self, key: CacheKey) -> Any:
        return self._entries.get(tuple(key))

    def __contains__(self, key: CacheKey) -> bool:
        return tuple(key) in self._entries

    def set(self, key: CacheKey, value: Any) -> None:
        key = tuple(key)
        self._entries[key] = value
        self._notify("set", key)

    def invalidate(self, key: CacheKey) -> list[CacheKey]:
        prefix = tuple(key)
        removed = [cached for cached in self._entries if cached[: len(prefix)] == prefix]
        for cached in removed:
            del self._entries[cached]
            self._notify("invalidate", cached)
        return removed

    def invalidate_for(self, mutation: str, entry_id: Optional[int] = None) -> list[CacheKey]:
        removed: list[CacheKey] = []
        for key in INVALIDATION_POLICY[mutation](entry_id):
            removed.extend(self.invalidate(key))
        return removed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, key: CacheKey) -> None:
        for listener in list(self._listeners):
            listener(event, key)
